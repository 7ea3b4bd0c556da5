"""
Routers module - API endpoint handlers organized by feature.

- auth: User registration and login
- users: User profile (timezone, locale)
- assistant: Chat, image parsing, duplicate checks, briefings and suggestions
"""
