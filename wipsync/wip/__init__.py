"""
wipsync WIP Module

Scheduled vs. unscheduled hours, trend forecast and workbook export.
"""
