"""
Service Applications

One FastAPI application per service. Each module exposes ``create_app()``
and a module-level ``app`` for uvicorn:

    uvicorn fooddelivery.apps.agent_service:app --port 3003
    uvicorn fooddelivery.apps.order_service:app --port 3004
    uvicorn fooddelivery.apps.restaurant_service:app --port 3002
    uvicorn fooddelivery.apps.user_service:app --port 3000
"""
