"""
DWM Platform
Service layer: all database reads and writes for the blueprints.
"""
