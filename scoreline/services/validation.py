from datetime import datetime, timezone

from scoreline.errors import ValidationError


def parse_datetime(value, field='datetime'):
    """Parse an ISO 8601 string (``Z``/offset allowed) or datetime to naive UTC."""
    if value is None or value == '':
        raise ValidationError(f'{field} is required.')
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f'Invalid {field} format. Use ISO 8601 or YYYY-MM-DDTHH:MM.')
    else:
        raise ValidationError(f'Invalid {field} format. Use ISO 8601 or YYYY-MM-DDTHH:MM.')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_non_negative_int(value, field, allow_none=False):
    """Accept ints and integral numeric strings; refuse bools, negatives and fractions."""
    if value is None:
        if allow_none:
            return None
        raise ValidationError(f'{field} is required.')
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a non-negative integer.')
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValidationError(f'{field} must be a non-negative integer.')
    if number < 0:
        raise ValidationError(f'{field} must be a non-negative integer.')
    return number


def require_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} is required.')
    return value.strip()
