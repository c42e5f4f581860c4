"""
Training Architecture
Resolves the LU/course hierarchy of a training (blocks, learning units,
courses, semesters) into ordered trees and course paths for display.
"""

__version__ = "0.1.0"
