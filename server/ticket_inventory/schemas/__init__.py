"""Pydantic schemas for request/response validation."""

from .availability import *  # noqa: F403
from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .inventory import *  # noqa: F403
from .seats import *  # noqa: F403
