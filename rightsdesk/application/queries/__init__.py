from .portal import ClientContext, ClientDashboard, PortalQueries

__all__ = ["ClientContext", "ClientDashboard", "PortalQueries"]
