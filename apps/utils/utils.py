from django.utils import timezone


def now():
    return timezone.now()


def apply_sort(queryset, sort_param, allowed, default):
    """
    Order a queryset by a `?sort=` value such as "-on_hand".
    `allowed` is an iterable of field names, or a dict mapping public sort
    names to queryset fields (annotations included).
    Names outside `allowed` fall back to `default`.
    """
    if not isinstance(allowed, dict):
        allowed = {name: name for name in allowed}

    for candidate in (sort_param, default):
        if not candidate:
            continue
        descending = candidate.startswith("-")
        field = allowed.get(candidate.lstrip("-"))
        if field:
            return queryset.order_by(f"-{field}" if descending else field)
    return queryset


def query_flag(params, name):
    """
    Truthy query-string flag: ?below_safety=1 / true / yes / on
    """
    return str(params.get(name, "")).lower() in ("1", "true", "yes", "on")
