"""
Patient Health System.

Terminal patient-records application: users log in and navigate
role-specific menus to view or search medical records stored in JSON files.
"""

__version__ = "1.0.0"
