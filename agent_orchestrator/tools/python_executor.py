"""
Remote Python Code Executor

Executes Python code via a remote python-executor service for secure,
sandboxed code execution outside the orchestrator process.
"""

import io
import json
import logging
import tarfile
from typing import Optional

import requests

from ..config import config
from .registry import ToolDefinition

logger = logging.getLogger(__name__)

INPUT_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "code": {"type": "string", "description": "python code to execute"},
        "timeout_seconds": {
            "type": "integer",
            "minimum": 1,
            "description": "maximum execution time in seconds",
        },
    },
    "required": ["code"],
}


def _failure(error: str) -> dict:
    return {"success": False, "error": error, "output": "", "result": None}


def _build_archive(code: str) -> io.BytesIO:
    """Pack the code as ``main.py`` inside an in-memory tar archive."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        code_bytes = code.encode("utf-8")
        info = tarfile.TarInfo(name="main.py")
        info.size = len(code_bytes)
        tar.addfile(info, io.BytesIO(code_bytes))
    buffer.seek(0)
    return buffer


def execute_python(code: str, timeout_seconds: Optional[int] = None) -> dict:
    """
    Execute Python code via the remote python-executor service.

    Args:
        code: Python code to execute
        timeout_seconds: Maximum execution time; defaults to the configured timeout

    Returns:
        Dictionary with success flag, output, and error
    """
    if not code or not code.strip():
        return _failure('No code provided. Expected JSON: {"code": "print(1)"}')

    executor = config.tools.python_executor
    if timeout_seconds is None:
        timeout_seconds = executor.timeout

    endpoint = f"{executor.url.rstrip('/')}/api/v1/exec/sync"
    metadata = {
        "entrypoint": "main.py",
        "config": {"timeout_seconds": timeout_seconds},
    }
    files = {
        "tar": ("code.tar", _build_archive(code), "application/octet-stream"),
        "metadata": (None, json.dumps(metadata), "application/json"),
    }

    try:
        response = requests.post(endpoint, files=files, timeout=timeout_seconds + 5)
        response.raise_for_status()
        return _adapt_response(response.json())
    except requests.exceptions.Timeout:
        logger.error("Python executor request timed out after %ss", timeout_seconds)
        return _failure(f"Execution timed out after {timeout_seconds} seconds")
    except requests.exceptions.ConnectionError as e:
        logger.error("Failed to connect to python-executor service: %s", e)
        return _failure(f"Failed to connect to python-executor service: {e}")
    except requests.exceptions.HTTPError as e:
        logger.error("Python executor HTTP error: %s", e)
        return _failure(f"Python executor service error: {e}")
    except requests.exceptions.RequestException as e:
        logger.error("Python executor request failed: %s", e)
        return _failure(str(e))


def _adapt_response(remote_response: dict) -> dict:
    """
    Map the service response (status, stdout, stderr, exit_code, error)
    onto the tool result shape (success, error, output, result).
    """
    status = remote_response.get("status", "failed")
    success = status == "completed"
    stdout = remote_response.get("stdout", "")
    stderr = remote_response.get("stderr", "")
    exit_code = remote_response.get("exit_code", -1)
    error_msg = remote_response.get("error", "")

    error = None
    if not success:
        if error_msg:
            error = error_msg
        elif stderr:
            error = stderr.strip()
        elif exit_code != 0:
            error = f"Process exited with code {exit_code}"
        else:
            error = f"Execution {status}"

    output = stdout
    if success and stderr:
        output = f"{stdout}\n[stderr: {stderr}]" if stdout else f"[stderr: {stderr}]"

    return {"success": success, "error": error, "output": output, "result": None}


def format_result_for_llm(execution_result: dict) -> str:
    """Format execution result for LLM consumption."""
    if not execution_result["success"]:
        return f"Execution failed with error: {execution_result['error']}"

    if execution_result["output"]:
        return f"Output:\n{execution_result['output']}"
    return "Code executed successfully (no output)"


def _handle_execute(params: dict) -> dict:
    timeout = params.get("timeout_seconds")
    return execute_python(
        code=params.get("code", ""),
        timeout_seconds=int(timeout) if timeout is not None else None,
    )


def build_tool() -> ToolDefinition:
    """Definition of the ``python_execute`` tool."""
    return ToolDefinition(
        name="python_execute",
        description="Execute Python code in a remote sandbox and return its output",
        input_schema=INPUT_SCHEMA,
        handler=_handle_execute,
        formatter=format_result_for_llm,
    )
