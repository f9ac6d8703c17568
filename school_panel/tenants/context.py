"""
Current tenant for the running request.

Set by the middleware and by mixins.bind_request_tenant; read by model
managers and logging. Uses contextvars so it is safe for sync and async views.
"""
import contextvars

_current_tenant: contextvars.ContextVar = contextvars.ContextVar(
    'current_tenant', default=None
)


def set_current_tenant(tenant):
    _current_tenant.set(tenant)


def get_current_tenant():
    """Returns None when no tenant is set."""
    return _current_tenant.get()


def clear_current_tenant():
    _current_tenant.set(None)
