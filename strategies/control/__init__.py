"""
Control API for the running grid bot
"""
