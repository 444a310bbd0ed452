"""
Smooth - version control for people who just want to save their work.

A friendly terminal and browser front-end over git: save changes with a
per-file review, restore old versions behind automatic safety backups, and
try ideas out on throwaway experiment branches.
"""

__version__ = "0.1.0"
__author__ = "Smooth Team"
