"""
HTTP API for the job scheduler (FastAPI).
"""
