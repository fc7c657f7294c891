import logging
import random
import re
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from wordchain.config import settings
from wordchain.services.exceptions import (
    CorruptChainError,
    FormatError,
    InvalidArgumentError,
    UntrainedError,
    VersionError,
)
from wordchain.services.markov import MarkovChain
from wordchain.services.markov_io import (
    deserialize_from_file,
    deserialize_from_string,
    serialize_to_file,
    serialize_to_string,
)
from wordchain.services.tokenizer import Tokenizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/markov", tags=["markov"])

# In-memory chain registry, keyed by model name
MODEL_CACHE: Dict[str, MarkovChain] = {}

_NAME_RE = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")


class TrainRequest(BaseModel):
    corpus: List[str]
    model_name: str = "default"


class GenerateRequest(BaseModel):
    model_name: str = "default"
    limit: Optional[int] = Field(default=None, ge=1, le=settings.MARKOV_MAX_LIMIT)
    seed: Optional[int] = None
    count: int = Field(default=1, ge=1, le=20)


class ImportRequest(BaseModel):
    data: str = Field(..., description="Base64 encoded chain")
    model_name: str = "default"


def new_chain() -> MarkovChain:
    return MarkovChain(Tokenizer(settings.MARKOV_MEANINGLESS_PATTERN))


def _get_chain(name: str) -> MarkovChain:
    chain = MODEL_CACHE.get(name)
    if chain is None:
        raise HTTPException(status_code=404, detail="model not found, train first")
    return chain


def _chain_path(name: str) -> Path:
    if not _NAME_RE.match(name):
        raise HTTPException(status_code=400, detail="invalid model name")
    return Path(settings.MARKOV_STORE_DIR) / f"{name}.chain"


@router.post("/train")
async def train(req: TrainRequest):
    if not req.corpus:
        raise HTTPException(status_code=400, detail="corpus is empty")
    chain = MODEL_CACHE.get(req.model_name) or new_chain()
    chain.train(req.corpus)
    MODEL_CACHE[req.model_name] = chain
    logger.info(f"[Markov] Trained '{req.model_name}' on {len(req.corpus)} lines ({len(chain)} nodes)")
    return {"ok": True, "model": req.model_name, "nodes": len(chain), "beginnings": len(chain.beginnings)}


@router.post("/generate")
async def generate(req: GenerateRequest):
    chain = _get_chain(req.model_name)
    limit = req.limit or settings.MARKOV_DEFAULT_LIMIT
    rng = random.Random(req.seed) if req.seed is not None else None
    try:
        texts = [chain.generate(limit=limit, rng=rng) for _ in range(req.count)]
    except UntrainedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CorruptChainError as e:
        logger.error(f"[Markov] Corrupt chain '{req.model_name}': {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {"ok": True, "data": {"text": texts[0], "texts": texts}}


@router.get("/{model_name}/stats")
async def stats(model_name: str):
    chain = _get_chain(model_name)
    return {"ok": True, "data": asdict(chain.get_stats())}


@router.get("/{model_name}/export")
async def export_chain(model_name: str):
    chain = _get_chain(model_name)
    return {"ok": True, "data": {"model": model_name, "chain": serialize_to_string(chain)}}


@router.post("/import")
async def import_chain(req: ImportRequest):
    try:
        chain = deserialize_from_string(req.data, Tokenizer(settings.MARKOV_MEANINGLESS_PATTERN))
    except VersionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FormatError as e:
        raise HTTPException(status_code=400, detail=f"invalid chain data: {e}")
    MODEL_CACHE[req.model_name] = chain
    return {"ok": True, "model": req.model_name, "nodes": len(chain)}


@router.post("/{model_name}/save")
async def save_chain(model_name: str):
    chain = _get_chain(model_name)
    path = serialize_to_file(chain, _chain_path(model_name))
    return {"ok": True, "data": {"model": model_name, "path": str(path)}}


@router.post("/{model_name}/load")
async def load_chain(model_name: str):
    path = _chain_path(model_name)
    if not path.exists():
        raise HTTPException(status_code=404, detail="chain file not found")
    try:
        chain = deserialize_from_file(path, Tokenizer(settings.MARKOV_MEANINGLESS_PATTERN))
    except FormatError as e:
        raise HTTPException(status_code=400, detail=f"invalid chain file: {e}")
    MODEL_CACHE[model_name] = chain
    return {"ok": True, "model": model_name, "nodes": len(chain)}


@router.delete("/{model_name}")
async def delete_chain(model_name: str):
    if MODEL_CACHE.pop(model_name, None) is None:
        raise HTTPException(status_code=404, detail="model not found")
    return {"ok": True, "model": model_name}
