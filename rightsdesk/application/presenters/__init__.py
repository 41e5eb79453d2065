from .portal_presenter import PortalPresenter
from .statement import StatementRenderer

__all__ = ["PortalPresenter", "StatementRenderer"]
