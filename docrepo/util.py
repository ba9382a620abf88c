import dataclasses
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import json
from pathlib import Path
from typing import Optional, Type


def clamp(value, min, max):
    return sorted((min, value, max))[1]


class DataclassJSONEncoder(json.JSONEncoder):
    def default(self, o):
        if dataclasses.is_dataclass(o):
            return dataclasses.asdict(o)
        if isinstance(o, Path):
            return str(o)
        return super().default(o)


class DataclassJSONDecoder(json.JSONDecoder):
    def __init__(self, class_type: Type, **kwargs) -> None:
        super().__init__(**kwargs)
        self.__class_type = class_type

    def decode(self, s):
        result = super().decode(s)
        return self.__class_type(**result)


def parse_http_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an HTTP-date header value into an aware UTC `datetime`.

    @return
      `None` when `value` is missing or is not a valid HTTP date.
    """
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        # "-0000" dates come back naive; HTTP dates are always GMT.
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
