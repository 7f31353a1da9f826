from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional

from .config import NetworkNamespace, settings
from .did_state import DidStateStore
from .errors import (
    AddressInvalid,
    AvatarNotFound,
    DidError,
    DomainNotFound,
    InvalidInput,
    NameInvalid,
    NetworkUnavailable,
    StateConflict,
    StateCorrupt,
    StateNotFound,
)
from .logging_config import setup_logging
from .models import AppInfo, DidOperation, ResolveResponse
from .resolver import Resolver
from .storage import FileStateStorage
from .zilliqa_service import ZilliqaService


STATUS_BY_ERROR = {
    NameInvalid: 400,
    AddressInvalid: 400,
    InvalidInput: 400,
    DomainNotFound: 404,
    AvatarNotFound: 404,
    StateNotFound: 404,
    StateConflict: 409,
    StateCorrupt: 500,
    NetworkUnavailable: 502,
}


zilliqa = ZilliqaService(settings)
resolver = Resolver(settings, zilliqa)
store = DidStateStore(FileStateStorage(settings.did_state_dir))


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging(
        level=settings.log_level,
        fmt=settings.log_format,
        log_file=settings.log_file or None,
    )
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def require_api_key(x_api_key: str = Header(default="")) -> None:
    if settings.api_key and x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


def to_http_error(exc: DidError) -> HTTPException:
    status = next(
        (code for kind, code in STATUS_BY_ERROR.items() if isinstance(exc, kind)), 500
    )
    return HTTPException(status_code=status, detail=exc.to_dict())


@app.get("/api/info", response_model=AppInfo)
async def info() -> AppInfo:
    return AppInfo(
        zil_mode=settings.zil_mode,
        default_network=NetworkNamespace(settings.default_network),
        dns_field=settings.dns_field,
        init_addresses={
            network.value: settings.init_address(network) for network in NetworkNamespace
        },
    )


@app.get("/api/resolve/{domain_name}", response_model=ResolveResponse)
async def resolve(
    domain_name: str,
    network: Optional[NetworkNamespace] = None,
    init_address: Optional[str] = None,
) -> ResolveResponse:
    network = network or NetworkNamespace(settings.default_network)
    contract = init_address or settings.init_address(network)
    if not contract:
        raise HTTPException(
            status_code=400,
            detail=f"No name registry contract configured for {network.value}",
        )
    try:
        address = await resolver.resolve_dns(network, contract, domain_name)
    except DidError as exc:
        raise to_http_error(exc) from exc
    return ResolveResponse(domain=domain_name, network=network, address=address)


@app.get("/api/dids/{did}")
async def get_did_state(did: str):
    try:
        state = await store.fetch(did)
    except DidError as exc:
        raise to_http_error(exc) from exc
    return state.to_document()


@app.post("/api/dids/{did}/operations")
async def apply_operation(
    did: str, payload: DidOperation, _: None = Depends(require_api_key)
):
    try:
        state = await store.apply(did, payload)
    except DidError as exc:
        raise to_http_error(exc) from exc
    return state.to_document()
