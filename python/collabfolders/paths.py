"""
Computation of the remote folder paths used to share an instance's folder with a user.

Two paths are needed: the path of the folder that the technical identity shares with the
user (the *share path*, relative to the technical identity's root) and the path at which
the shared folder then appears in the user's own root and which gets renamed to the
user's chosen name (the *final path*).
"""
from collections import namedtuple
from typing import Optional

class GroupContext(namedtuple("GroupContext", "group_mode_enabled current_group_id")):
    """
    the group situation of the acting user with respect to an activity instance.

    ``group_mode_enabled``
        True if the activity uses group mode (visible or separate groups are not
        distinguished).
    ``current_group_id``
        the first group (among the activity's grouping) that the user belongs to, or None
        if the user is in none of them.
    """
    __slots__ = ()

    @property
    def in_group(self) -> bool:
        """
        True if group mode is on and the user belongs to one of the activity's groups
        """
        return bool(self.group_mode_enabled and self.current_group_id)

NO_GROUPS = GroupContext(False, None)

SharePaths = namedtuple("SharePaths", "share_path final_path")
SharePaths.__doc__ = "the pair of paths returned by :py:func:`resolve_paths`"

def resolve_paths(instance_id, group_context: Optional[GroupContext]) -> SharePaths:
    """
    return the share path and the rename target for an instance given a user's group context.

    Without group mode, the whole instance folder is shared and appears in the user's root
    under the same name, so both paths are ``/<instance_id>``.  In group mode, only the
    subfolder for the user's group is shared: the share path is
    ``/<instance_id>/<group_id>`` while the folder appears in the user's root as
    ``/<group_id>``.

    A user in group mode who belongs to none of the activity's groups (typically a teacher)
    falls back to the instance-level paths.  Such a user never reaches a group subfolder
    through this function.
    """
    sharepath = "/" + str(instance_id)
    finalpath = sharepath

    if group_context and group_context.in_group:
        gid = str(group_context.current_group_id)
        sharepath += "/" + gid
        finalpath = "/" + gid

    return SharePaths(sharepath, finalpath)
