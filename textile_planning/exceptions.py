class PlanningSystemError(Exception):
    """Base exception for the textile planning system.

    Carries an optional machine-readable ``code`` and a ``details`` mapping,
    for example the per-field messages of a rejected production line.
    """

    default_message = "Textile planning operation failed"

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Error payload for reports and batch results."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(PlanningSystemError):
    """settings.ini is missing a section or holds a value of the wrong type."""

    default_message = "Invalid planning settings"


class DatabaseError(PlanningSystemError):
    """The planning database could not be reached or initialized."""

    default_message = "Planning database unavailable"


class ValidationError(PlanningSystemError):
    """Rejected input such as a fractional line capacity or a purchase in the wrong state."""

    default_message = "Invalid planning input"


class NotFoundError(PlanningSystemError):
    """No planning record with the given id."""

    default_message = "Planning record not found"


class SchedulingError(PlanningSystemError):
    """Writing allocation entries failed and the transaction was rolled back."""

    default_message = "Production scheduling failed"


class ForecastError(PlanningSystemError):
    """A sales forecast was asked for with an unusable horizon or window."""

    default_message = "Sales forecast failed"


class ReportingError(PlanningSystemError):
    """A report could not be built or exported."""

    default_message = "Planning report failed"
