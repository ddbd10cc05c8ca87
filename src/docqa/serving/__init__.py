"""
Serving — FastAPI application and uvicorn entry point for document QA.
"""
