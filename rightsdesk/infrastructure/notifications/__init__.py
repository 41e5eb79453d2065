from .log import LogInvitationNotifier

__all__ = ["LogInvitationNotifier"]
