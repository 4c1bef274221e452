"""
Bridge Controllers

Entry surfaces of the bridge. Only HTTP for now.
"""
