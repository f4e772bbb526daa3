"""
Command line interface for inspecting schedules and slots.
"""
