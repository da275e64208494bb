"""
credvault - password hashing and one-time password primitives.
"""

import logging

__version__ = "1.0.0"

# Library logging: the application decides where records go
logging.getLogger(__name__).addHandler(logging.NullHandler())
