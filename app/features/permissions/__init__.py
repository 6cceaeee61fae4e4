"""
Permission feature module.

Implements role resolution and the static role → capability policy used to
gate admin features, plus admin-only role assignment management.
"""
