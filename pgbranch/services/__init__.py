"""
services/ - Business Logic Layer
================================
Configuration resolution, branch naming and classification, and the
orchestration of branch switches. Services talk to repositories and to the
Git/database collaborators, never to the terminal.
"""
