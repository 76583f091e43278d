"""
Synology Update Checker - Resolver Package
Version keys, catalog parsing, compatibility matching, the source chain,
reporting and the interactive installation controller.
"""
