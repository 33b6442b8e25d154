"""
DWM Platform
AI module.

Submodules:
    - gateway: LLM Gateway (provider routing, retry, typed provider errors)
    - sop_analyzer: SOP document analysis and step extraction
"""
