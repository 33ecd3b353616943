from fastapi import APIRouter
from dynforms.api.forms.router import router as forms_router

router = APIRouter()
router.include_router(forms_router, prefix="/forms", tags=["Forms"])
