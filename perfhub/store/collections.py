"""Record store collection names (schema-in-code).

The realtime store has no DDL: a collection exists as soon as a child is
written under its path. These constants are the single source of truth for
the paths the service reads and writes.
"""

USERS = "users"
EMPLOYEES = "employees"
GOALS = "goals"
FEEDBACKS = "feedbacks"
PERFORMANCE_METRICS = "performanceMetrics"
NOTIFICATIONS = "notifications"
