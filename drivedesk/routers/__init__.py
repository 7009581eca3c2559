from drivedesk.routers import auth, billing, calendar, classes, payments, students

__all__ = [
    'auth',
    'billing',
    'calendar',
    'classes',
    'payments',
    'students',
]
