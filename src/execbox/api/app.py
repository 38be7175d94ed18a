from __future__ import annotations
from functools import lru_cache
from typing import List, Optional, Union

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import CodeValidationError, CompileError, SecurityViolationError, UnsupportedLanguageError
from ..core.models import ExecutionStatus, JudgeCase, Language, ResourceLimits
from ..core.settings import load_settings
from ..logging import setup_logging
from ..services.checkers import get_checker
from ..services.orchestrator import CodeRunner

app = FastAPI(title="execbox")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # whitelist the frontend origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_runner() -> CodeRunner:
    s = load_settings()
    setup_logging(s.log_level, s.log_json)
    return CodeRunner(s)


# --------- Schemas ---------
class LimitsReq(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    memory_mb: int = Field(gt=0, alias="memoryMB")
    cpu_time_seconds: int = Field(gt=0, alias="cpuTimeSeconds")
    wall_time_seconds: int = Field(gt=0, alias="wallTimeSeconds")
    max_output_bytes: int = Field(gt=0, alias="maxOutputBytes")
    max_processes: int = Field(gt=0, alias="maxProcesses")
    max_files: int = Field(gt=0, alias="maxFiles")


class RunReq(BaseModel):
    language: str
    code: str
    stdin: str = ""
    limits: Optional[LimitsReq] = None
    expected_output: Optional[str] = None
    checker: str = "exact"
    epsilon: float = 1e-6


class CaseReq(BaseModel):
    id: Union[int, str]
    input: str = ""
    output: str
    hidden: bool = False


class JudgeReq(BaseModel):
    language: str
    code: str
    tests: List[CaseReq]
    limits: Optional[LimitsReq] = None
    checker: str = "whitespace"
    epsilon: float = 1e-6
    run_all: bool = True
    debug: bool = False


class RunRes(BaseModel):
    status: str
    stdout: str
    stderr: str
    exitCode: int
    cpuTimeMs: int
    wallTimeMs: int
    memoryKB: int
    matches: Optional[bool] = None


# --------- Error mapping ---------
@app.exception_handler(SecurityViolationError)
async def _security(_: Request, e: SecurityViolationError):
    return JSONResponse(
        status_code=400,
        content={"status": ExecutionStatus.SECURITY_VIOLATION.value, "error": e.reason, "pattern": e.pattern},
    )


@app.exception_handler(CodeValidationError)
async def _validation(_: Request, e: CodeValidationError):
    return JSONResponse(status_code=400, content={"error": str(e)})


@app.exception_handler(UnsupportedLanguageError)
async def _unsupported(_: Request, e: UnsupportedLanguageError):
    return JSONResponse(status_code=400, content={"error": str(e)})


@app.exception_handler(CompileError)
async def _compile(_: Request, e: CompileError):
    return JSONResponse(
        status_code=422,
        content={"error": "COMPILE_ERROR", "message": e.message, "diagnostics": e.diagnostics},
    )


# --------- Endpoints ---------
@app.get("/health")
def health():
    return {"ok": True}


@app.get("/languages")
def languages(runner: CodeRunner = Depends(get_runner)):
    return {
        lang.value: runner.default_limits(lang).to_dict()
        for lang in Language
        if runner.is_language_supported(lang.value)
    }


@app.post("/run", response_model=RunRes, response_model_exclude_none=True)
def run(req: RunReq, runner: CodeRunner = Depends(get_runner)):
    try:
        check = get_checker(req.checker, req.epsilon)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    limits = ResourceLimits(**req.limits.model_dump()) if req.limits else None
    result = runner.run(req.language, req.code, req.stdin, limits)
    body = result.to_dict()
    if req.expected_output is not None:
        body["matches"] = result.ok and check(result.stdout, req.expected_output)
    return RunRes(**body)


@app.post("/judge")
def judge(req: JudgeReq, runner: CodeRunner = Depends(get_runner)):
    try:
        get_checker(req.checker, req.epsilon)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    limits = ResourceLimits(**req.limits.model_dump()) if req.limits else None
    cases = [JudgeCase(id=t.id, output=t.output, input=t.input, hidden=t.hidden) for t in req.tests]
    result = runner.judge(
        req.language, req.code, cases, limits,
        checker=req.checker, epsilon=req.epsilon, run_all=req.run_all, debug=req.debug,
    )
    return result.to_dict()
