"""
handlers/ - Presentation Layer
================================
click commands. Each handler parses its arguments, delegates to the
appropriate Service, and prints the result for the user.
No business logic lives here.
"""
