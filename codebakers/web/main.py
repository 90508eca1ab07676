from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codebakers import __version__
from codebakers.web.api import router as api_router

app = FastAPI(title="CodeBakers Engineering API", version=__version__)

# Allow CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.get("/")
def health_check():
    return {"status": "ok", "service": "codebakers-engineering"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8678)
