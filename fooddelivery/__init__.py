"""
                Food Delivery Platform

Four cooperating services (user gateway, restaurant, order, delivery agent)
talking HTTP/JSON, with a saga-based order acceptance workflow.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
