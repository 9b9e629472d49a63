"""Type aliases used across the TallyUp platform."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

JsonDict = dict[str, Any]
MerchantId = str
JobName = str
HandlerId = str
CronExpression = str
Clock = Callable[[], datetime]
