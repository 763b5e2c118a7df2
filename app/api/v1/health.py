from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check(request: Request):
    runtime = getattr(request.app.state, "runtime", None)
    providers = list(runtime.gateway.available_providers()) if runtime is not None else []
    return {"status": "healthy", "llm_providers": providers}
