"""
Access error hierarchy.

- AccessError: base, carries an error_code and an HTTP status
- NotEligible: the user's lifetime trial is already consumed
- DuplicatePending: an unexpired trial already exists for the exact scope
- EnrollmentConflict: a paid enrollment was requested where one already exists
- StorageUnavailable: a storage round-trip failed
- GrantNotFound / PlanUnavailable / EnrollmentNotFound: lookups that admin and purchase flows depend on
- InvalidEnrollmentChange: an admin enrollment action that does not fit the row
- NoActiveTrial: trial usage recorded outside a live grant
"""


class AccessError(Exception):
    """Base exception for entitlement-related failures."""

    error_code = "ACCESS_ERROR"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.error_code, "message": self.message}


class NotEligible(AccessError):
    """Raised when the user's one lifetime trial has already been used."""

    error_code = "not_eligible"
    status_code = 403

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__("Trial already used for this account")


class DuplicatePending(AccessError):
    """Raised when an unexpired grant already exists for (course, resource type)."""

    error_code = "duplicate_pending"
    status_code = 409

    def __init__(self, user_id: int, course_id: int, resource_type: str):
        self.user_id = user_id
        self.course_id = course_id
        self.resource_type = resource_type
        super().__init__(f"An active {resource_type} trial already exists for course {course_id}")


class EnrollmentConflict(AccessError):
    """
    Raised when creating a paid enrollment where one already exists.

    This points at a caller bug (e.g. a payment approved twice), not a user-facing denial.
    """

    error_code = "enrollment_conflict"
    status_code = 409

    def __init__(self, user_id: int, course_id: int):
        self.user_id = user_id
        self.course_id = course_id
        super().__init__(f"User {user_id} is already enrolled in course {course_id}")


class StorageUnavailable(AccessError):
    """Raised when a read or write against the database fails."""

    error_code = "storage_unavailable"
    status_code = 503

    def __init__(self, detail: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(detail)


class GrantNotFound(AccessError):
    error_code = "grant_not_found"
    status_code = 404

    def __init__(self, grant_id: int):
        self.grant_id = grant_id
        super().__init__(f"Trial grant {grant_id} not found")


class PlanUnavailable(AccessError):
    """Raised when a purchase references a missing, inactive or already-ended plan."""

    error_code = "plan_unavailable"
    status_code = 400


class EnrollmentNotFound(AccessError):
    error_code = "enrollment_not_found"
    status_code = 404

    def __init__(self, enrollment_id: int):
        self.enrollment_id = enrollment_id
        super().__init__(f"Enrollment {enrollment_id} not found")


class InvalidEnrollmentChange(AccessError):
    """Raised when an admin action does not apply to the enrollment's current type."""

    error_code = "invalid_enrollment_change"
    status_code = 400


class NoActiveTrial(AccessError):
    """Raised when trial usage is recorded without an unexpired grant for the scope."""

    error_code = "no_active_trial"
    status_code = 403

    def __init__(self, user_id: int, course_id: int, resource_type: str):
        self.user_id = user_id
        self.course_id = course_id
        self.resource_type = resource_type
        super().__init__(f"No active {resource_type} trial for course {course_id}")
