class ValidationError(ValueError):
    """Input rejected before anything was written."""


class ActiveBudgetExistsError(ValidationError):
    pass


class NotFoundError(ValueError):
    """The record is absent or belongs to another user."""


class StoreUnavailableError(RuntimeError):
    pass
