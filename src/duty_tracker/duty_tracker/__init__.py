"""Duty Tracker package.

Time & duty tracking engine for the project/task management app, organized by
feature modules (attendance, duty, tasks, breaks, manual_logs, timeline) with a
thin Flask controller layer over service/repository layers.
"""
