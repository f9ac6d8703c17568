"""
Query-string parsing for list filters.

Each helper returns None when the parameter is missing or blank and raises
a DRF ValidationError (HTTP 400, keyed by the parameter name) when the value
cannot be coerced.
"""
from django.utils.dateparse import parse_date
from rest_framework import serializers
from rest_framework.exceptions import ValidationError


def _coerce(params, name, field):
    value = params.get(name, '').strip()
    if not value:
        return None
    try:
        return field.run_validation(value)
    except ValidationError as e:
        raise ValidationError({name: e.detail})


def id_param(params, name):
    """Positive integer primary key, e.g. ?student=12"""
    return _coerce(params, name, serializers.IntegerField(min_value=1))


def uuid_param(params, name):
    return _coerce(params, name, serializers.UUIDField())


def date_param(params, name):
    value = params.get(name)
    if not value:
        return None
    try:
        parsed = parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError({name: ['Date has wrong format. Use YYYY-MM-DD.']})
    return parsed
