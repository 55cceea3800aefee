# Import every model so Base.metadata knows about all tables
from app.models.user import User  # noqa: F401
from app.models.course import Course  # noqa: F401
from app.models.plan import SubscriptionPlan  # noqa: F401
from app.models.subscription import Subscription  # noqa: F401
from app.models.enrollment import Enrollment  # noqa: F401
from app.models.trial_grant import TrialGrant  # noqa: F401
from app.models.content import LectureRecording, LiveClass  # noqa: F401
from app.models.trial_usage import TrialUsage  # noqa: F401
