"""
Mnemo

A personal memory assistant: chat answers are grounded in the user's stored
memories, and new facts the model notices are saved back as memories.
"""

__version__ = "1.0.0"
__description__ = "Personal memory assistant with retrieval-augmented chat"
