"""
API Dependencies
"""

from fastapi import Request

from academy_analytics.warehouse import RollupEngine


def get_rollup_engine(request: Request) -> RollupEngine:
    """
    Rollup engine bound at startup.

    Use this in route handlers:

    Example:
        @router.get("/global")
        async def global_metrics(engine: RollupEngine = Depends(get_rollup_engine)):
            ...
    """
    engine = getattr(request.app.state, "rollup_engine", None)
    if engine is None:
        raise RuntimeError("Rollup engine not initialized. Start the application lifespan first.")
    return engine
