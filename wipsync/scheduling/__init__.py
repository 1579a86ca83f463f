"""
wipsync Scheduling Module

Calendar math, scope allocation, override resolution and the sync writer
that keeps the schedules aggregate and its caches current.
"""
