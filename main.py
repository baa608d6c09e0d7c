from typing import Optional
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from database import Base, engine, get_db
from api import rooms, friends, stats, users
from core.engine import EffortEngine
from core.store import SqlKeyValueStore

logger = logging.getLogger(__name__)


def create_app(effort_engine: Optional[EffortEngine] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: 建立資料表，載入 engine（測試時可以直接注入）
        if effort_engine is None:
            Base.metadata.create_all(bind=engine)
            app.state.engine = EffortEngine(SqlKeyValueStore())
        else:
            app.state.engine = effort_engine
        yield
        # Shutdown: 最後再寫一次，避免上一次寫入失敗的資料遺失
        app.state.engine.persist()

    app = FastAPI(
        title="Effort Rooms API",
        description="Shared effort rooms, sessions and friends",
        version="1.0.0",
        lifespan=lifespan
    )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure this properly in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(rooms.router)
    app.include_router(friends.router)
    app.include_router(stats.router)
    app.include_router(users.router)

    @app.get("/")
    def root():
        return {"message": "Effort Rooms API", "status": "ok"}

    @app.get("/health")
    def health(db: Session = Depends(get_db)):
        db.execute(text("SELECT 1"))
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
