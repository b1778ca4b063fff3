"""
NewsGuard - Services Package
============================

Domain services. The moderation engine lives in services.moderation.
"""
