"""
Orchestration

Cross-service workflows. Currently the order acceptance saga.
"""

from fooddelivery.orchestration.acceptance import AcceptanceResult, OrderAcceptanceOrchestrator

__all__ = ["AcceptanceResult", "OrderAcceptanceOrchestrator"]
