"""
Reference applications built on routinekit.
Each module is runnable with `python -m routinekit.apps.<name>`.
"""
