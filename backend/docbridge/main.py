from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .core.logging import configure_logging
from .core.settings import get_settings
from .routers import documents, processing, learning

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title="DocBridge API",
    description="Document ingestion and product mapping learning between trading companies",
    version="1.0.0",
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(documents.router)
app.include_router(processing.router)
app.include_router(learning.router)

@app.get("/health")
async def health_check():
    return {"status": "healthy", "message": "DocBridge API is running", "environment": settings.environment}

@app.get("/")
async def root():
    return {"message": "Welcome to DocBridge API"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("docbridge.main:app", host="0.0.0.0", port=8000, reload=True)
