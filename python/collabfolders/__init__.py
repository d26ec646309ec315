"""
a service that provisions shared Nextcloud folders for collaborative-folder learning activities
and issues each authorized user a personal link to their folder.

This package includes the following components:

:py:mod:`workflow`
    the per-request workflow of the activity page: reset, logout, name submission, link
    generation, and display
:py:mod:`policy`
    the access rules deciding who may view the activity, see the group overview, and obtain
    a link
:py:mod:`paths`
    the computation of the remote folder paths for a user's group situation
:py:mod:`orchestrator`
    the two-step remote operation (share, then rename) that gives a user a folder
:py:mod:`tasks` and :py:mod:`provisioning`
    the queue of background folder-creation tasks and their execution
:py:mod:`prefs`
    per-user preference storage, including the cache of issued links
:py:mod:`clients`
    clients for the Nextcloud OCS Share API, its WebDAV interface, and users' remote
    identities
:py:mod:`platform`
    interfaces to the learning platform: capabilities, courses and groups, and events
:py:mod:`service` and :py:mod:`web`
    assembly of the service from configuration and its exposure as a Flask web application

Folder Provisioning
===================

When an activity instance is created, a background task creates a folder named after the
instance in the space of a technical Nextcloud identity (and, if the activity uses groups, a
subfolder for each group).  Once that is done, a user visiting the activity page can choose a
name for the folder and ask for a link to it.  The service then shares the folder (or, in group
mode, the user's group subfolder) with the user's own Nextcloud account and renames the shared
folder, as it appears in the user's space, to the chosen name.  The resulting link is cached in
the user's preferences so that this is done at most once per user.
"""
__version__ = "0.1.0"
