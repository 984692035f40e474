"""
Task subsystem.

Components:
- task_models.py: data structures (Task, NoteRef, PluginSettings, ...)
- line_classifier.py: is this line a task, is it checked
- task_extractor.py: note text -> Task list (folder filters, identification policy)
- task_store.py: in-memory collection, full rebuild / per-note splice, change events
- task_toggler.py: rewrite a task line and write the note back
- task_filters.py: search / completed / archive filters, sorting, grouping
- task_api.py: small high-level helpers bound to AppState
"""
