# listing_publisher/main.py

from fastapi import FastAPI, Request

from listing_publisher.core.config import get_settings
from listing_publisher.core.logging_config import configure_logging
from listing_publisher.routes import health, platforms, responses

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="Listing Publisher",
    debug=settings.DEBUG,
)

# Add middleware to handle HTTPS behind proxy
@app.middleware("http")
async def proxy_headers_middleware(request: Request, call_next):
    forwarded_proto = request.headers.get("x-forwarded-proto")
    if forwarded_proto == "https":
        request.scope["scheme"] = "https"
    response = await call_next(request)
    return response

app.include_router(health.router)
app.include_router(platforms.router)
app.include_router(responses.router)
