"""
Error taxonomy. Configuration errors are raised to the caller; subprocess failures
are converted to results elsewhere; ProcedureError is what remote callers see.
"""


class PortalError(Exception):
    """Base for orchestrator errors."""


class PortalNotFoundError(PortalError):
    def __init__(self, portal_id: str, category: str = ""):
        self.portal_id = portal_id
        self.category = category
        where = f' in category "{category}"' if category else ""
        super().__init__(f'Portal "{portal_id}" not found{where}')


class CategoryNotFoundError(PortalError):
    def __init__(self, category: str):
        self.category = category
        super().__init__(f'Category "{category}" not found')


# code -> HTTP status
PROCEDURE_STATUS = {
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "INTERNAL_SERVER_ERROR": 500,
}


class ProcedureError(Exception):
    """Typed error returned to remote callers as {"code", "detail"}."""

    def __init__(self, code: str, message: str):
        if code not in PROCEDURE_STATUS:
            raise ValueError(f"unknown procedure error code: {code}")
        self.code = code
        self.message = message
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return PROCEDURE_STATUS[self.code]


class InstallError(PortalError):
    """Dependency install timed out or exited non-zero."""
