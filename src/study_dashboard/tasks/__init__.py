"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskPriority, TaskStats, DateRange)
- task_store.py: in-memory collection persisted through the key-value storage
- completion_policy.py: completedAt stamping rules
- task_query.py: pure statistics and filtering functions
- task_reports.py: dashboard data series (trends, distributions, admin overview)
- task_export.py: CSV export
- task_timer.py: cancellable per-task stopwatch
"""
