"""
DWM Platform
Blueprint registry.

Every blueprint lives under /api/v1 and is registered in dwm.create_app().
"""
