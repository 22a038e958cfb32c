"""Request parsing helpers shared by the JSON blueprints."""
from typing import Any, Dict, Optional
from datetime import datetime

from flask import request

from posledger.exceptions import ValidationError
from posledger.utils.time_utils import parse_iso_datetime


def get_json_body() -> Dict[str, Any]:
    """Return the JSON object sent by the client, or fail with a 400."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError('Se esperaba un objeto JSON')
    return data


def get_datetime_arg(name: str) -> Optional[datetime]:
    """Parse an ISO-8601 query argument (``?start=2026-10-01``)."""
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise ValidationError(f'Fecha inválida en "{name}", use AAAA-MM-DD o ISO-8601')
