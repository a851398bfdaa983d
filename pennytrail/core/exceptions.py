class ServiceConfigurationError(Exception):
    """A model service is missing required configuration (e.g. its URL)."""


class SyncInProgressError(Exception):
    """Another sync already holds the user's in-progress flag."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"Sync already in progress for user {user_id}")


class MailFetchError(Exception):
    """The mail provider call failed."""


class MailRateLimitError(MailFetchError):
    pass


class MailNotFoundError(MailFetchError):
    pass


class TransactionNotFoundError(Exception):
    pass


class TransactionPermissionError(Exception):
    pass
