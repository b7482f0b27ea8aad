from .account_routes import router as account_routes
from .admin_routes import router as admin_routes
from .analytics_routes import router as analytics_routes
from .auth_routes import router as auth_routes
from .moderator_routes import router as moderator_routes
from .pages_routes import router as pages_routes
from .report_routes import router as report_routes

__all__ = [
    "account_routes",
    "admin_routes",
    "analytics_routes",
    "auth_routes",
    "moderator_routes",
    "pages_routes",
    "report_routes",
]
