"""
Services.

Business logic layer: event sync, derived stats, listings, content cache
and render queue. Import services from their own modules.
"""
