"""
dynamic_todo: collect checkbox tasks from notes into one view and sync toggles back.
"""

__version__ = "0.4.0"
