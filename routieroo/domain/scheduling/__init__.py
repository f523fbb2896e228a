"""
Scheduling Domain

Turns per-contact recurring weekday schedules and one-time visits into
concrete daily visit lists, generates routes for a day, and lays routes
out as calendar events.

Modules:
- recurrence.py     # Recurring-day expansion and schedule formatting
- calendar_plan.py  # Stop/drive duration semantics and event merging
- service.py        # Day plans, week overview, route generation
- router.py         # /scheduling endpoints
"""
