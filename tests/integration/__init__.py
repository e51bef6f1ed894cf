"""
API test package for the group task service.

Tests use the Flask test client through ``tests.helpers.ApiUser`` and
demonstrate:
- Multi-user workflows (leader, managers, assignees)
- Input validation testing
- Error handling and translated error messages
- Notification delivery checks
"""
