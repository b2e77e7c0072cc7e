import os
import time
import base64
import binascii
from datetime import datetime
from typing import Optional, List, Literal

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from studygen.generation import (
    StudyGenerator,
    StudyMaterial,
    StudyDomain,
    TextPart,
    ImagePart,
    is_fallback_material,
)
from studygen.utils import get_logger, set_request_context, log_request

LOG = get_logger()

MIN_TEXT_CHARS = 20


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    HOST: str = '0.0.0.0'
    PORT: int = 8000
    ENVIRONMENT: str = 'development'
    LOG_LEVEL: str = 'INFO'
    CORS_ORIGIN: str = '*'


settings = Settings()

app = FastAPI(title='Study Generation Service', version='1.0.0', description='Turns notes into summaries, flashcards and quizzes')

# CORS config
origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_generator() -> StudyGenerator:
    return StudyGenerator.get_instance()


def _error(status_code: int, message: str, request_id: str, details=None) -> JSONResponse:
    body = {'success': False, 'error': {'message': message, 'request_id': request_id}}
    if details is not None:
        body['error']['details'] = details
    return JSONResponse(status_code=status_code, content=body)


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or os.urandom(8).hex()


@app.middleware('http')
async def add_request_id_and_logging(request: Request, call_next):
    # prefer incoming X-Request-ID header for cross-service tracing
    request_id = request.headers.get('x-request-id') or os.urandom(8).hex()
    request.state.request_id = request_id
    set_request_context(request_id)
    start = time.time()
    LOG.info('http_request_start', extra={'method': request.method, 'path': request.url.path, 'request_id': request_id})
    try:
        response: Response = await call_next(request)
    except Exception:
        LOG.exception('Unhandled exception in request', exc_info=True)
        return _error(500, 'Internal server error', request_id)
    duration = int((time.time() - start) * 1000)
    log_request(request_id, request.method, request.url.path, response.status_code, duration, ip=request.client.host if request.client else None)
    response.headers['X-Request-ID'] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = _request_id(request)
    LOG.warning('request_validation_failed', extra={'request_id': request_id, 'path': request.url.path})
    return _error(400, 'Invalid request', request_id, details=jsonable_encoder(exc.errors(), custom_encoder={bytes: lambda b: '<bytes>'}))


class ContentPartIn(BaseModel):
    type: Literal['text', 'image']
    text: Optional[str] = None
    data: Optional[str] = Field(None, description='Base64 encoded image bytes')
    mime_type: str = 'image/png'
    filename: Optional[str] = None


class SynthesizeRequest(BaseModel):
    parts: List[ContentPartIn] = Field(..., min_length=1)
    domain: Optional[StudyDomain] = None


class ContinueRequest(BaseModel):
    material: dict
    domain: Optional[StudyDomain] = None


class QuizExtendRequest(BaseModel):
    parts: List[ContentPartIn] = Field(default_factory=list)
    domain: Optional[StudyDomain] = None
    topic: Optional[str] = None


class RemediateRequest(BaseModel):
    parts: List[ContentPartIn] = Field(default_factory=list)
    failed_concept: str = Field(..., min_length=1)
    domain: Optional[StudyDomain] = None


class FlashcardExtendRequest(BaseModel):
    topic: str = Field(..., min_length=1)
    domain: Optional[StudyDomain] = None


def to_content_parts(parts: List[ContentPartIn]):
    """Convert request parts into generation parts; raises ValueError on bad input."""
    converted = []
    for i, part in enumerate(parts):
        if part.type == 'text':
            if part.text is None:
                raise ValueError(f'parts[{i}]: text part without text')
            converted.append(TextPart(text=part.text, filename=part.filename))
            continue
        if not part.data:
            raise ValueError(f'parts[{i}]: image part without data')
        try:
            data = base64.b64decode(part.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f'parts[{i}]: image data is not valid base64') from e
        converted.append(ImagePart(data=data, mime_type=part.mime_type, filename=part.filename))
    return converted


def has_enough_content(parts) -> bool:
    if any(isinstance(p, ImagePart) for p in parts):
        return True
    return sum(len(p.text.strip()) for p in parts) >= MIN_TEXT_CHARS


def _dump_list(items) -> list:
    return [item.model_dump(by_alias=True, exclude_none=True, mode='json') for item in items]


@app.get('/health')
async def health():
    return {'status': 'ok', 'timestamp': datetime.utcnow().isoformat() + 'Z', 'service': 'study'}


@app.get('/ready')
async def ready():
    key_count = len(get_generator().key_pool)
    ready_ok = key_count > 0
    services = {'gemini': 'ok' if ready_ok else 'error: no api keys configured'}
    status_code = 200 if ready_ok else 503
    return JSONResponse(status_code=status_code, content={'status': 'ready' if ready_ok else 'not ready', 'key_count': key_count, 'services': services})


@app.post('/study/synthesize')
async def study_synthesize(req: SynthesizeRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    try:
        parts = to_content_parts(req.parts)
    except ValueError as e:
        return _error(400, 'Invalid content part', request_id, details=str(e))
    if not has_enough_content(parts):
        return _error(400, 'Not enough content', request_id, details=f'provide at least {MIN_TEXT_CHARS} characters of text or an image')

    LOG.info('study_synthesize_start', extra={'request_id': request_id, 'part_count': len(parts), 'domain': req.domain.value if req.domain else None})
    material = await get_generator().synthesize(parts, req.domain, request_id=request_id)
    return {'success': True, 'material': material.to_wire(), 'fallback': is_fallback_material(material), 'request_id': request_id}


@app.post('/study/continue')
async def study_continue(req: ContinueRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    try:
        material = StudyMaterial.model_validate(req.material)
    except ValidationError as e:
        return _error(400, 'Invalid study material', request_id, details=jsonable_encoder(e.errors(include_url=False, include_context=False)))

    LOG.info('study_continue_start', extra={'request_id': request_id, 'has_unprocessed': bool(material.unprocessed_content)})
    updated = await get_generator().keep_going(material, req.domain, request_id=request_id)
    return {'success': True, 'material': updated.to_wire(), 'request_id': request_id}


@app.post('/quiz/extend')
async def quiz_extend(req: QuizExtendRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    try:
        parts = to_content_parts(req.parts)
    except ValueError as e:
        return _error(400, 'Invalid content part', request_id, details=str(e))

    questions = await get_generator().extend_quiz(parts, req.domain, topic=req.topic, request_id=request_id)
    return {'success': True, 'questions': _dump_list(questions), 'request_id': request_id}


@app.post('/quiz/remediate')
async def quiz_remediate(req: RemediateRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    try:
        parts = to_content_parts(req.parts)
    except ValueError as e:
        return _error(400, 'Invalid content part', request_id, details=str(e))

    questions = await get_generator().remediate(parts, req.failed_concept, req.domain, request_id=request_id)
    return {'success': True, 'questions': _dump_list(questions), 'request_id': request_id}


@app.post('/flashcards/extend')
async def flashcards_extend(req: FlashcardExtendRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    flashcards = await get_generator().extend_flashcards(req.topic, req.domain, request_id=request_id)
    return {'success': True, 'flashcards': _dump_list(flashcards), 'request_id': request_id}


@app.on_event('startup')
async def on_startup():
    LOG.info('Study service starting', extra={'env': settings.ENVIRONMENT})
    try:
        generator = get_generator()
        if not len(generator.key_pool):
            LOG.warning('No Gemini API keys configured; generation will return fallback content')
    except Exception:
        LOG.exception('study_generator_warmup_error', exc_info=True)


@app.on_event('shutdown')
async def on_shutdown():
    LOG.info('Study service shutting down')


if __name__ == '__main__':
    import uvicorn

    workers = int(os.getenv('WORKERS', '1'))
    # uvicorn does not support --reload with multiple workers
    if settings.ENVIRONMENT == 'development':
        workers = 1
    reload_enabled = (settings.ENVIRONMENT == 'development') and (workers == 1)

    uvicorn.run(
        'main:app',
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=reload_enabled,
        workers=workers,
    )
