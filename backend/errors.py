# ============================================================
# errors.py — Engine Error Taxonomy
# ============================================================


class DeskError(Exception):
    """Base class for every outcome the engine reports to a caller"""

    status_code = 400

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail or self.__class__.__name__


class Unauthenticated(DeskError):
    """Caller has no operator profile"""
    status_code = 401


class Forbidden(DeskError):
    """Caller is registered but their role lacks permission"""
    status_code = 403


class NotFound(DeskError):
    status_code = 404


class AlreadyExists(DeskError):
    status_code = 409


class InvalidArgument(DeskError):
    """Empty required string or unrecognized enum value"""
    status_code = 422


class InternalError(DeskError):
    """
    Broken engine invariant (e.g. id collision).
    The running transaction is rolled back before this propagates.
    """
    status_code = 500
