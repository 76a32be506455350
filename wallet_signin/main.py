from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

# Configure basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

from . import config
from .routers import auth

app = FastAPI(
    title="Wallet Sign-In Backend",
    description="Sign-In with Ethereum (EIP-4361) verification and session issuance.",
    version="0.1.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,  # session cookie carries the SIWE challenge
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)


@app.get("/", tags=["Health Check"])
def read_root():
    """Root endpoint for health check."""
    return {"status": "ok", "message": "Wallet sign-in backend is running."}


# --- Server Startup (for local development) ---
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("wallet_signin.main:app", host="0.0.0.0", port=8000, reload=True)
