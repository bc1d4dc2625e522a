# /backend/app/services/__init__.py
from .auth_service import auth_service
from .storage_service import storage_service
from .text_acquisition import text_acquisition_service
from .llm_extraction_service import llm_extraction_service
from .review_gate import review_gate
from .ingestion_pipeline import ingestion_pipeline
