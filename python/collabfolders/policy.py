"""
The access policy for an activity instance: who may see the activity, who gets the group
overview table, and who may generate (or hold) a link to the collaborative folder.
"""
from collections import namedtuple

class AccessDecision(namedtuple("AccessDecision", "can_view_activity can_show_admin_table can_generate")):
    """
    the permissions a user has on an activity instance during a single request.

    ``can_view_activity``
        if False, the request must be blocked entirely
    ``can_show_admin_table``
        True if the per-group overview table should be shown
    ``can_generate``
        True if the user may generate a link or be shown a previously generated one
    """
    __slots__ = ()

def teacher_access(capability_add: bool, teacher_allowed: bool) -> bool:
    """
    return True if the user is an instance admin who has been allowed access to the folders
    """
    return bool(capability_add and teacher_allowed)

def evaluate(capability_view: bool, capability_add: bool, teacher_allowed: bool,
             folders_created: bool, group_mode_enabled: bool) -> AccessDecision:
    """
    combine a user's capabilities with the state of an instance into an :py:class:`AccessDecision`.

    :param bool capability_view:   True if the user holds the view capability on the instance
    :param bool capability_add:    True if the user holds the add-instance (admin) capability
    :param bool teacher_allowed:   the instance setting that permits admins folder access
    :param bool folders_created:   True if the remote folders have been provisioned
    :param bool group_mode_enabled:  True if the activity runs in group mode
    """
    capability_add = bool(capability_add)

    # (teacher access) XOR (not an admin): a non-admin always passes; an admin passes
    # only when teacher_allowed is set.
    gate = teacher_access(capability_add, teacher_allowed) != (not capability_add)

    return AccessDecision(
        bool(capability_view),
        bool(folders_created and capability_add and group_mode_enabled),
        bool(gate and folders_created)
    )
