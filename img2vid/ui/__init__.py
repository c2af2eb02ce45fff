from .controller import SessionController, SessionRegistry

__all__ = ["SessionController", "SessionRegistry"]
