"""
Serverless entry point for the Request Desk API
"""
import os

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")

from mangum import Mangum
from request_desk.main import app

# Lambda handler for the ASGI app; lifespan initializes the database per cold start.
# The live SSE routes need a long-running worker and are not served usefully here.
handler = Mangum(app, lifespan="auto")
