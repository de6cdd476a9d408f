"""
Timer subsystem.

Components:
- timer_models.py: data structures (TimerRecord, TimerState, TimerSnapshot)
- timer_storage.py: JSON-file key/value storage for snapshots
- timer_coordinator.py: single-active-timer state machine + persistence
- timer_poller.py: read-only polling loop for displays
"""
