from identity.user.services.user_store import UserStore, USER_INDEXES, normalize_email

__all__ = ["UserStore", "USER_INDEXES", "normalize_email"]
