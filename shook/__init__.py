"""
Shook - deploy merged changes on GitLab and GitHub webhooks.
"""

__version__ = "1.0.0"
