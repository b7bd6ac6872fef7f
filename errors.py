"""
Failure kinds of a registration submission.

Every error carries the single sentence shown to the submitter in
``user_message``. Store-level failures (``SupabaseError``) never leave the
submission coordinator: they are classified into one of these first.
"""


class RegistrationError(Exception):
    def __init__(self, user_message: str):
        super().__init__(user_message)
        self.user_message = user_message


class LocalValidationError(RegistrationError):
    """The form has field errors; nothing was sent to the store."""

    def __init__(self, errors: dict, user_message: str):
        super().__init__(user_message)
        self.errors = dict(errors)


class DeadlinePassedError(RegistrationError):
    pass


class StoreWriteError(RegistrationError):
    """Insert or patch of the submission row failed."""


class DuplicateKeyError(StoreWriteError):
    def __init__(self, user_message: str, column: str | None = None):
        super().__init__(user_message)
        self.column = column


class StoreUploadError(RegistrationError):
    def __init__(self, user_message: str, column: str):
        super().__init__(user_message)
        self.column = column


class StoreRollbackError(RegistrationError):
    """Uploaded objects could not be removed; they may be orphaned in storage."""


class StoreCriticalRollbackError(RegistrationError):
    """The submission row could not be removed after a partial write."""
