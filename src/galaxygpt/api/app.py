"""FastAPI application exposing the GalaxyGPT ask endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

import chromadb
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from openai import OpenAI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from galaxygpt.api.schemas import AskPayload, AskResponse, ErrorResponse
from galaxygpt.config import Settings, get_settings
from galaxygpt.embeddings import (
    ChromaVectorIndex,
    EmbeddingBackend,
    EmbeddingConfig,
    HashEmbeddingBackend,
    OpenAIEmbeddingBackend,
)
from galaxygpt.errors import ConfigurationError, ContentRejectedError, GalaxyGPTError, IndexUnavailableError, InvalidInputError
from galaxygpt.metrics.observability import bind_correlation_id, clear_correlation_id, configure_logging, get_logger
from galaxygpt.models import ConversationTurn
from galaxygpt.retrieval.service import ContextManager, RetrievalConfig
from galaxygpt.services.answer import AnswerOrchestrator
from galaxygpt.services.conversation import ConversationAssembler, ConversationConfig
from galaxygpt.services.generation import ChatBackend, GenerationConfig, OpenAIChatBackend, TemplateChatBackend
from galaxygpt.services.moderation import ModerationBackend, OpenAIModerationBackend
from galaxygpt.services.query import QueryService
from galaxygpt.tokenization import TokenizerAdapter


@dataclass(frozen=True)
class AppDependencies:
    index: ChromaVectorIndex
    embeddings: EmbeddingBackend
    query_service: QueryService


def build_index(settings: Settings) -> ChromaVectorIndex:
    if settings.chroma_host:
        client = chromadb.HttpClient(
            host=settings.chroma_host,
            port=settings.chroma_port or 8000,
            ssl=settings.chroma_ssl,
        )
        return ChromaVectorIndex(settings.chroma_collection, client=client)
    return ChromaVectorIndex(settings.chroma_collection, persist_directory=settings.chroma_persist_dir)


def build_openai_client(settings: Settings) -> OpenAI:
    if not settings.openai_api_key:
        raise ConfigurationError("No OpenAI API key was provided.")
    return OpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout=settings.request_timeout_seconds,
        max_retries=0,
    )


def build_dependencies(settings: Settings) -> AppDependencies:
    """Construct the long-lived clients shared by every request."""

    embedding_config = EmbeddingConfig(model=settings.text_embedding_model, dim=settings.embedding_dim)
    embeddings: EmbeddingBackend
    chat: ChatBackend
    moderation: ModerationBackend | None = None
    if settings.use_openai:
        client = build_openai_client(settings)
        embeddings = OpenAIEmbeddingBackend(client, embedding_config)
        chat = OpenAIChatBackend(
            client,
            GenerationConfig(
                model=settings.gpt_model,
                temperature=settings.chat_temperature,
                max_output_tokens=settings.default_max_output_tokens,
            ),
        )
        if settings.moderation_enabled:
            moderation = OpenAIModerationBackend(client, model=settings.moderation_model)
    else:
        embeddings = HashEmbeddingBackend(embedding_config)
        chat = TemplateChatBackend()

    index = build_index(settings)
    chat_tokenizer = TokenizerAdapter.for_model(settings.gpt_model)
    embedding_tokenizer = TokenizerAdapter.for_model(settings.text_embedding_model)
    context_manager = ContextManager(
        embeddings,
        index,
        context_tokenizer=chat_tokenizer,
        embedding_tokenizer=embedding_tokenizer,
        config=RetrievalConfig(
            max_documents=settings.default_max_context_documents,
            token_budget=settings.context_token_budget,
            embedding_max_input_tokens=settings.embedding_max_input_tokens,
            delimiter=settings.context_delimiter,
        ),
    )
    orchestrator = AnswerOrchestrator(
        chat,
        chat_tokenizer,
        assembler=ConversationAssembler(
            ConversationConfig(
                system_prompt=settings.system_prompt,
                user_prompt_template=settings.user_prompt_template,
            ),
        ),
        moderation=moderation,
        default_max_output_tokens=settings.default_max_output_tokens,
    )
    query_service = QueryService(context_manager, orchestrator)
    return AppDependencies(index=index, embeddings=embeddings, query_service=query_service)


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    deps = dependencies or build_dependencies(settings)

    logger = get_logger("api")
    app = FastAPI(title="GalaxyGPT API", version=_version())
    app.state.dependencies = deps

    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):  # type: ignore[override]
        correlation_id = request.headers.get("X-Request-ID", uuid4().hex)
        request.state.correlation_id = correlation_id
        bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    def require_api_key(request: Request) -> None:
        expected = settings.api_key
        if not expected:
            return
        provided = request.headers.get("X-API-Key")
        if provided != expected:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

    def _correlation_id(request: Request) -> str:
        return getattr(request.state, "correlation_id", uuid4().hex)

    @app.exception_handler(InvalidInputError)
    async def handle_invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "The question cannot be empty.", "correlation_id": _correlation_id(request)},
        )

    @app.exception_handler(ContentRejectedError)
    async def handle_content_rejected(request: Request, exc: ContentRejectedError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "The question was rejected by moderation.", "correlation_id": _correlation_id(request)},
        )

    @app.exception_handler(GalaxyGPTError)
    async def handle_pipeline_error(request: Request, exc: GalaxyGPTError) -> JSONResponse:
        correlation_id = _correlation_id(request)
        logger.error("pipeline.error", correlation_id=correlation_id, kind=exc.kind, detail=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error", "correlation_id": correlation_id},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = _correlation_id(request)
        logger.error("unhandled.error", correlation_id=correlation_id, detail=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error", "correlation_id": correlation_id},
        )

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    def get_query_service(dep: AppDependencies = Depends(get_dependencies)) -> QueryService:
        return dep.query_service

    def get_index(dep: AppDependencies = Depends(get_dependencies)) -> ChromaVectorIndex:
        return dep.index

    # sync handlers run in the threadpool; the pipeline makes blocking network calls
    @app.post(
        "/api/v1/ask",
        response_model=AskResponse,
        name="AskQuestion",
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    def ask_question(
        payload: AskPayload,
        service: QueryService = Depends(get_query_service),
        _auth: None = Depends(require_api_key),
    ) -> AskResponse:
        limit = settings.max_context_documents_limit
        if payload.max_context_length is not None and payload.max_context_length > limit:
            raise HTTPException(status_code=422, detail=f"max_context_length cannot exceed {limit}")
        prior_turns = [
            ConversationTurn(role=turn.role, content=turn.content)
            for turn in payload.conversation or []
        ]
        result = service.ask(
            payload.prompt,
            username=payload.username,
            max_context_documents=payload.max_context_length,
            max_output_tokens=payload.max_length,
            prior_turns=prior_turns,
        )
        return AskResponse(
            answer=result.answer.answer,
            context=result.context.text,
            duration=str(round(result.duration_ms)),
            version=_version(),
            question_tokens=str(result.answer.prompt_tokens),
            response_tokens=str(result.answer.answer_tokens),
            context_tokens=str(result.context.token_count),
        )

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok", "version": _version(), "environment": settings.environment}

    @app.head("/healthz")
    async def healthcheck_head() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/healthz/ready")
    def readiness(index: ChromaVectorIndex = Depends(get_index)) -> JSONResponse:
        try:
            chunks = index.count()
        except IndexUnavailableError as exc:
            logger.warning("readiness.failed", detail=str(exc))
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unavailable"},
            )
        return JSONResponse(content={"status": "ready", "chunks": chunks})

    return app


def _version() -> str:
    from galaxygpt import __version__

    return __version__
