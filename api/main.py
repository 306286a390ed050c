"""
FastAPI application for the local RAG assistant.

Endpoints:
    GET  /health               service liveness
    POST /upload               ingest a PDF, DOCX, TXT or MD file
    POST /chat                 ask a question (optionally within a conversation)
    POST /indexes/rebuild      reload the corpus snapshot from disk
    GET  /documents            list ingested documents
    GET  /conversations        list conversations, newest first
    GET  /conversations/{id}   one conversation with its messages
    GET  /knowledge/status     corpus statistics

Usage:
    uvicorn api.main:app --reload --port 8000
"""

import asyncio
import logging
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import configure_logging, get_config
from rag.chat.engine import ChatEngine
from rag.exceptions import (
    DimensionMismatchError,
    EmptyEmbeddingError,
    NotFoundError,
    UnsupportedTypeError,
    UpstreamUnavailableError,
    ValidationError,
)
from rag.models.schemas import (
    ChatRequest,
    ChatResponse,
    Conversation,
    KnowledgeStatus,
    RebuildResponse,
    UploadResponse,
)

logger = logging.getLogger(__name__)

# Initialize chat engine (lazy loaded)
_chat_engine: Optional[ChatEngine] = None


def get_chat_engine() -> ChatEngine:
    """Get or create the chat engine instance."""
    global _chat_engine
    if _chat_engine is None:
        config = get_config()
        configure_logging(config)
        _chat_engine = ChatEngine(config)
    return _chat_engine


def _save_upload(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting LocalRAG API")
    yield
    if _chat_engine is not None:
        await _chat_engine.aclose()


# Initialize FastAPI app
app = FastAPI(
    title="LocalRAG Assistant",
    description="Question answering over a local document corpus",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "LocalRagAssistant",
    }


@app.post("/upload", response_model=UploadResponse)
async def upload_document(
    file: UploadFile = File(...),
    engine: ChatEngine = Depends(get_chat_engine),
):
    """
    Upload a document and add it to the corpus.

    - **file**: PDF, DOCX, TXT or MD file, at most 50 MB
    """
    config = engine.config

    if not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    extension = Path(file.filename).suffix.lower()
    if extension not in config.allowed_extensions:
        raise HTTPException(
            status_code=400,
            detail=f"File must be one of the following types: {', '.join(config.allowed_extensions)}",
        )

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="File cannot be empty")
    if len(content) > config.max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File size must not exceed {config.max_upload_bytes // (1024 * 1024)} MB",
        )

    file_path = config.upload_directory / f"{uuid.uuid4()}_{Path(file.filename).name}"
    await asyncio.to_thread(_save_upload, file_path, content)
    logger.info(f"File uploaded: {file.filename}")

    try:
        return await engine.ingestion.ingest(file_path, file.filename, file.content_type)
    except (ValidationError, UnsupportedTypeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (UpstreamUnavailableError, EmptyEmbeddingError, DimensionMismatchError) as e:
        logger.error(f"Embedding backend failed during upload: {e}")
        raise HTTPException(status_code=502, detail=f"Embedding error: {str(e)}")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception("Error processing upload")
        raise HTTPException(status_code=500, detail=f"Upload error: {str(e)}")


@app.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    engine: ChatEngine = Depends(get_chat_engine),
):
    """
    Ask a question and get a grounded answer with citations.

    - **query**: The user's question (max 5000 characters)
    - **conversation_id**: Optional conversation ID for context
    """
    try:
        return await engine.chat(request)
    except Exception as e:
        logger.exception("Error processing chat request")
        raise HTTPException(status_code=500, detail=f"Chat error: {str(e)}")


@app.post("/indexes/rebuild", response_model=RebuildResponse)
async def rebuild_index(engine: ChatEngine = Depends(get_chat_engine)):
    """Reload the document corpus from its snapshot file."""
    try:
        return await engine.rebuild_knowledge_base()
    except Exception as e:
        logger.exception("Error rebuilding index")
        raise HTTPException(status_code=500, detail=f"Rebuild error: {str(e)}")


@app.get("/documents")
async def list_documents(engine: ChatEngine = Depends(get_chat_engine)):
    """List ingested documents without their embeddings."""
    return [
        {
            "id": doc.id,
            "filename": doc.filename,
            "content_type": doc.content_type,
            "uploaded_at": doc.uploaded_at,
            "chunk_count": len(doc.chunks),
        }
        for doc in engine.document_store.list_documents()
    ]


@app.get("/conversations", response_model=list[Conversation])
async def list_conversations(engine: ChatEngine = Depends(get_chat_engine)):
    """List conversations, most recent first."""
    return engine.conversation_store.list_conversations()


@app.get("/conversations/{conversation_id}", response_model=Conversation)
async def get_conversation(
    conversation_id: str,
    engine: ChatEngine = Depends(get_chat_engine),
):
    """Get one conversation with all of its messages."""
    conversation = engine.conversation_store.get_conversation(conversation_id)
    if conversation is None:
        raise NotFoundError(f"Conversation {conversation_id} not found")
    return conversation


@app.get("/knowledge/status", response_model=KnowledgeStatus)
async def knowledge_status(engine: ChatEngine = Depends(get_chat_engine)):
    """Get the status of the document corpus."""
    return engine.get_knowledge_status()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
