import os
import time
import signal
import asyncio
from datetime import datetime
from typing import Optional, List

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from tabledrill.quiz import (
    DrillEngine,
    Dataset,
    QuizConfiguration,
    RoundState,
    QuizRound,
    BlankCell,
    Submission,
    GradeResult,
    TableDrillError,
    EvaluationError,
)
from tabledrill.memory import SelectionMemory
from tabledrill.utils import get_logger, set_request_context

LOG = get_logger()


class Settings(BaseSettings):
    HOST: str = os.getenv('HOST', '0.0.0.0')
    PORT: int = int(os.getenv('PORT', '8000'))
    ENVIRONMENT: str = os.getenv('ENVIRONMENT', 'development')
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    CORS_ORIGIN: str = os.getenv('CORS_ORIGIN', '*')
    REDIS_REQUIRED_FOR_READY: bool = os.getenv('REDIS_REQUIRED_FOR_READY', 'false').lower() in ('1', 'true', 'yes')


settings = Settings()

app = FastAPI(title='Table Drill Service', version='1.0.0', description='Fill-in-the-blank table drills')

origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware('http')
async def add_request_id_and_logging(request: Request, call_next):
    # prefer incoming X-Request-ID header for tracing
    request_id = request.headers.get('x-request-id') or os.urandom(8).hex()
    request.state.request_id = request_id
    set_request_context(request_id)
    start = time.time()
    LOG.info('http_request_start', extra={'method': request.method, 'path': request.url.path, 'request_id': request_id, 'client': request.client.host if request.client else None})
    try:
        response: Response = await call_next(request)
    except Exception:
        LOG.exception('Unhandled exception in request', exc_info=True)
        body = {'success': False, 'error': {'message': 'Internal server error', 'request_id': request_id}}
        return JSONResponse(status_code=500, content=body)
    duration = int((time.time() - start) * 1000)
    LOG.info('http_request_end', extra={'method': request.method, 'path': request.url.path, 'status_code': response.status_code, 'duration_ms': duration, 'request_id': request_id})
    response.headers['X-Request-ID'] = request_id
    return response


@app.get('/health')
async def health():
    return {'status': 'ok', 'timestamp': datetime.utcnow().isoformat() + 'Z', 'service': 'tabledrill'}


def _check_selection_memory():
    try:
        memory = SelectionMemory.get_instance()
        if memory.store is None:
            return 'disabled', None
        backend = getattr(memory.store, 'backend', 'unknown')
        return ('ok' if memory.store.ping() else 'error: store unreachable'), backend
    except Exception as e:
        return f'error: {str(e)}', None


@app.get('/ready')
async def ready():
    status, backend = _check_selection_memory()
    services = {'selection_memory': status, 'memory_backend': backend}

    ready_ok = True
    if settings.REDIS_REQUIRED_FOR_READY and (backend != 'redis' or status.startswith('error')):
        ready_ok = False

    status_code = 200 if ready_ok else 503
    return JSONResponse(status_code=status_code, content={'status': 'ready' if ready_ok else 'not ready', 'services': services})


class QuizRoundRequest(BaseModel):
    dataset: Dataset
    config: QuizConfiguration = Field(default_factory=QuizConfiguration)
    round_state: Optional[RoundState] = Field(None, description='State returned by the previous round')
    retry_same: bool = Field(False, description='Reuse the rows of round_state instead of selecting new ones')
    client_id: Optional[str] = Field(None, max_length=128, description='Scopes the selection memory to one client')


class QuizRoundResponse(BaseModel):
    success: bool
    round: QuizRound
    request_id: str


class QuizGradeRequest(BaseModel):
    dataset: Dataset
    blanks: List[BlankCell] = Field(default_factory=list)
    submissions: List[Submission] = Field(default_factory=list)


class QuizGradeResponse(BaseModel):
    success: bool
    result: GradeResult
    request_id: str


@app.post('/quiz/round', response_model=QuizRoundResponse)
async def quiz_round(req: QuizRoundRequest, fastapi_request: Request):
    request_id = getattr(fastapi_request.state, 'request_id', None) or os.urandom(8).hex()
    LOG.info('quiz_round_start', extra={'request_id': request_id, 'retry_same': req.retry_same, 'row_count': req.dataset.row_count})
    try:
        engine = DrillEngine.get_instance()
        quiz = engine.start_round(req.dataset, req.config, round_state=req.round_state, retry_same=req.retry_same, client_id=req.client_id, request_id=request_id)
        LOG.info('quiz_round_complete', extra={'request_id': request_id, 'blank_count': quiz.metadata.get('blank_count'), 'rows': len(quiz.rows)})
        return QuizRoundResponse(success=True, round=quiz, request_id=request_id)
    except TableDrillError as e:
        LOG.exception('quiz_round_failed', exc_info=True)
        return JSONResponse(status_code=500, content={'success': False, 'error': 'Round generation failed', 'details': str(e), 'request_id': request_id})
    except Exception as e:
        LOG.exception('quiz_round_unknown_error', exc_info=True)
        return JSONResponse(status_code=500, content={'success': False, 'error': 'Unexpected error', 'details': str(e), 'request_id': request_id})


@app.post('/quiz/grade', response_model=QuizGradeResponse)
async def quiz_grade(req: QuizGradeRequest, fastapi_request: Request):
    request_id = getattr(fastapi_request.state, 'request_id', None) or os.urandom(8).hex()
    LOG.info('quiz_grade_start', extra={'request_id': request_id, 'blank_count': len(req.blanks)})
    try:
        engine = DrillEngine.get_instance()
        result = engine.grade(req.dataset, req.blanks, req.submissions, request_id=request_id)
        LOG.info('quiz_grade_complete', extra={'request_id': request_id, 'correct_count': result.correct_count, 'total_count': result.total_count})
        return QuizGradeResponse(success=True, result=result, request_id=request_id)
    except EvaluationError as e:
        LOG.warning('quiz_grade_validation_error', extra={'request_id': request_id, 'error': str(e)})
        return JSONResponse(status_code=422, content={'success': False, 'error': 'Validation failed', 'details': str(e), 'request_id': request_id})
    except TableDrillError as e:
        LOG.exception('quiz_grade_failed', exc_info=True)
        return JSONResponse(status_code=500, content={'success': False, 'error': 'Grading failed', 'details': str(e), 'request_id': request_id})
    except Exception as e:
        LOG.exception('quiz_grade_unknown_error', exc_info=True)
        return JSONResponse(status_code=500, content={'success': False, 'error': 'Unexpected error', 'details': str(e), 'request_id': request_id})


@app.on_event('startup')
async def on_startup():
    LOG.info('Table drill service starting', extra={'env': settings.ENVIRONMENT})
    try:
        DrillEngine.get_instance()
        LOG.info('DrillEngine warmup triggered')
    except Exception as e:
        LOG.warning('DrillEngine warmup failed', extra={'error': str(e)})


@app.on_event('shutdown')
async def on_shutdown():
    LOG.info('Table drill service shutting down')


def _install_signal_handlers(loop: Optional[asyncio.AbstractEventLoop] = None):
    if loop is None:
        loop = asyncio.get_event_loop()

    def _handler(signum, frame):
        LOG.info('Received shutdown signal', extra={'signal': signum})
        loop.call_soon_threadsafe(loop.stop)

    signal.signal(signal.SIGTERM, _handler)
    signal.signal(signal.SIGINT, _handler)


if __name__ == '__main__':
    import uvicorn

    _install_signal_handlers()
    workers = int(os.getenv('WORKERS', '1'))
    # uvicorn cannot reload with several workers
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
