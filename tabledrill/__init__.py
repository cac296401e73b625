"""
Fill-in-the-blank table drills: row selection with memory, blank masks and grading.
"""
