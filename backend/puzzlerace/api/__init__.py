from flask import current_app, request

from puzzlerace.errors import ValidationError


def json_body():
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def int_arg(name, default):
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f'{name} must be an integer', field=name)
    if value < 1:
        raise ValidationError(f'{name} must be at least 1', field=name)
    return value


def page_args(default_limit):
    """Read ``page`` and ``limit`` from the query string, capping the page size."""
    page = int_arg('page', 1)
    limit = min(int_arg('limit', default_limit), current_app.config.get('MAX_PAGE_LIMIT', 100))
    return page, limit
