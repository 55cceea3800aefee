import enum


class Role(str, enum.Enum):
    student = "student"
    teacher = "teacher"
    admin = "admin"
    superadmin = "superadmin"


ADMIN_ROLES = (Role.admin.value, Role.superadmin.value)
STAFF_ROLES = (Role.teacher.value, Role.admin.value, Role.superadmin.value)


class ResourceType(str, enum.Enum):
    lecture_recording = "lecture_recording"
    live_class = "live_class"


class EnrollmentType(str, enum.Enum):
    paid = "paid"
    demo = "demo"


class PlanType(str, enum.Enum):
    recordings_only = "recordings_only"
    live_classes_only = "live_classes_only"
    recordings_and_live = "recordings_and_live"


class SubscriptionStatus(str, enum.Enum):
    active = "active"
    expired = "expired"
    cancelled = "cancelled"


def values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class EnrollmentAction(str, enum.Enum):
    promote_to_paid = "promote_to_paid"
    change_plan = "change_plan"
