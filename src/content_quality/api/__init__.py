"""
HTTP API -- a thin FastAPI adapter over QualityPipeline.

Entry point: gateway.create_app(). Routes live in routes/, request and
response contracts in models/.
"""
