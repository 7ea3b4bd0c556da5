"""
Google Environment Module - Google Workspace integration.

Only Google Calendar is used by the assistant. OAuth happens outside this
service; callers pass an access token with the calendar.events scope.
"""
