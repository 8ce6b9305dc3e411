from typing import FrozenSet
from formbuilder.constants.utils import ADMIN_ROLES, CAPABILITIES, ROLE_CAPABILITIES, ROLES


def user_capabilities(user) -> FrozenSet[CAPABILITIES]:
    """Capabilities granted by the user's role plus any explicit permissions."""
    if user.role == ROLES.SUPER_ADMIN.value:
        return frozenset(CAPABILITIES)

    try:
        granted = set(ROLE_CAPABILITIES[ROLES(user.role)])
    except ValueError:
        granted = set()

    for permission in user.permissions or []:
        try:
            granted.add(CAPABILITIES(permission))
        except ValueError:
            continue

    return frozenset(granted)


def has_capability(user, capability: CAPABILITIES) -> bool:
    return capability in user_capabilities(user)


def is_admin(user) -> bool:
    return user.role in {role.value for role in ADMIN_ROLES}


def can_access_form(user, form) -> bool:
    if is_admin(user) or has_capability(user, CAPABILITIES.MANAGE_FORMS):
        return True
    return form.created_by == user.id


# Editing uses the same rule as read access
can_edit_form = can_access_form


def can_delete_form(user, form) -> bool:
    if has_capability(user, CAPABILITIES.DELETE_ANY_FORM):
        return True
    return form.created_by == user.id


def can_view_submission(user, submission) -> bool:
    if has_capability(user, CAPABILITIES.VIEW_SUBMISSIONS):
        return True
    return submission.form is not None and submission.form.created_by == user.id
