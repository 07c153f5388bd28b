"""JSON responses that understand the value types our ORM rows carry."""

from __future__ import annotations

import datetime
import json
import uuid
from decimal import Decimal
from enum import Enum
from typing import Any

from fastapi.responses import JSONResponse


class ApiJSONEncoder(json.JSONEncoder):
  """Encode UUIDs, datetimes, enums and Decimals returned by SQLAlchemy."""

  def default(self, obj: Any) -> Any:
    if isinstance(obj, Decimal):
      return int(obj) if obj % 1 == 0 else float(obj)
    if isinstance(obj, uuid.UUID):
      return str(obj)
    if isinstance(obj, datetime.datetime | datetime.date):
      return obj.isoformat()
    if isinstance(obj, Enum):
      return obj.value
    return super().default(obj)


class ApiJSONResponse(JSONResponse):
  """Compact JSON response using `ApiJSONEncoder`."""

  def render(self, content: Any) -> bytes:
    return json.dumps(content, ensure_ascii=False, allow_nan=False, indent=None, separators=(",", ":"), cls=ApiJSONEncoder).encode("utf-8")
