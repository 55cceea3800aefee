from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from app.utils.dt import as_utc_aware

# SQLite returns naive datetimes; every stored value is UTC, so say so on the way out
UtcDatetime = Annotated[datetime, AfterValidator(as_utc_aware)]
