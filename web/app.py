"""FastAPI web adapter for the LC-3 virtual machine."""

import base64
import binascii

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Optional
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lc3 import run_image, parse_image, RunOptions, ImageError


# Constants
MAX_IMAGE_SIZE = 2 * (1 << 16) + 2  # origin word + full address space


# Request/Response models
class RunOptionsModel(BaseModel):
    start_address: int = Field(default=0x3000, ge=0, le=0xFFFF)
    max_steps: int = Field(default=1_000_000, ge=1, le=50_000_000)
    trace: bool = False
    trace_watch: list[int] = Field(default_factory=list)
    trace_include_registers: bool = True
    trace_include_io: bool = True
    initial_memory: dict[str, int] = Field(default_factory=dict)


class RunRequest(BaseModel):
    image: str  # base64-encoded object file
    input: str = ""
    options: Optional[RunOptionsModel] = None


class RunResponse(BaseModel):
    status: str
    state: str
    output_text: str
    steps_executed: int
    final_state: dict
    trace_watch: list[int]
    trace: list[dict]
    error: Optional[dict] = None


# Create FastAPI app
app = FastAPI(
    title="LC-3 Virtual Machine",
    description="Web API for running LC-3 object images with tracing",
    version="0.1.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.post("/api/run", response_model=RunResponse)
def run_code(request: RunRequest):
    """Execute an LC-3 object image.

    Args:
        request: Base64 image, input characters, and execution options

    Returns:
        Execution result with output, trace, and final state
    """
    try:
        image_data = base64.b64decode(request.image, validate=True)
    except binascii.Error:
        raise HTTPException(status_code=400, detail="Image is not valid base64")

    if len(image_data) > MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"Image size exceeds limit of {MAX_IMAGE_SIZE} bytes",
        )

    try:
        image = parse_image(image_data)
    except ImageError as e:
        raise HTTPException(status_code=400, detail=e.message)

    opts = request.options or RunOptionsModel()

    # Convert initial_memory keys from string to int
    initial_memory = {}
    for k, v in opts.initial_memory.items():
        try:
            initial_memory[int(k, 0)] = v
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid memory address key: {k}",
            )

    run_opts = RunOptions(
        start_address=opts.start_address,
        max_steps=opts.max_steps,
        trace=opts.trace,
        trace_watch=opts.trace_watch,
        trace_include_registers=opts.trace_include_registers,
        trace_include_io=opts.trace_include_io,
        initial_memory=initial_memory,
    )

    result = run_image(image, input_text=request.input, options=run_opts)

    return result.to_dict()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
