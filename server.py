# server.py
import uvicorn
from main import app, config
from app.api.v1 import routers

# Mount all routers here
for router in routers:
    app.include_router(router)

if __name__ == "__main__":
    uvicorn.run(
        "server:app",
        host="0.0.0.0",
        port=8080,
        reload=config.environment.is_development,
        log_level=config.logging.level_value.lower(),
    )
