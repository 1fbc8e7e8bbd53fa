"""Timesheet Engine package.

Attendance state machine and timesheet aggregation for the HR web client,
organized by feature modules (attendance, timesheet, shifts, ...) with a thin
Flask controller layer over service/repository layers.
"""
