"""
Services module - domain logic shared by the API routes.
"""
