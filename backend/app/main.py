from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from clubreg_core import ConfigStore, ConfigUpdate, RegistrationSink, RegistrationSubmission, Settings
from clubreg_core.academic_year import resolve_academic_year
from clubreg_core.auth import verify_admin_secret
from clubreg_core.errors import AuthorizationError, ConfigurationError, StoreError, ValidationError
from clubreg_core.locks import NamedLocks
from clubreg_core.models import VALID_GRADES, ConfigRow
from clubreg_core.tabular import GoogleTabularStore, TabularStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


app = FastAPI(title="Club Registration API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_allow_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Shared by every request so search-or-create flows on the same name serialise.
_locks = NamedLocks()


class ClubConfigUpdateModel(BaseModel):
    club_id: str = Field(alias="clubId", min_length=1)
    club_name: str = Field(default="", alias="clubName")
    sheet_id: str = Field(default="", alias="sheetId")

    model_config = ConfigDict(populate_by_name=True)


class ClubConfigUpdateRequest(BaseModel):
    updates: List[ClubConfigUpdateModel] = Field(min_length=1)


class ClubConfigRowModel(BaseModel):
    club_id: str = Field(alias="clubId")
    club_name: str = Field(alias="clubName")
    sheet_id: str = Field(alias="sheetId")
    academic_year: str = Field(alias="academicYear")
    updated_at: str = Field(alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)


class ClubConfigResponse(BaseModel):
    academic_year: str = Field(alias="academicYear")
    clubs: List[ClubConfigRowModel]

    model_config = ConfigDict(populate_by_name=True)


class CreateSheetRequest(BaseModel):
    club_name: str = Field(alias="clubName", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class CreateSheetResponse(BaseModel):
    sheet_id: str = Field(alias="sheetId")
    message: str
    existing: bool

    model_config = ConfigDict(populate_by_name=True)


class RegistrationDataModel(BaseModel):
    timestamp: str
    email: str
    name: str
    grade: str
    photo_consent: bool = Field(default=False, alias="photoConsent")
    discord: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("grade")
    @classmethod
    def _grade_in_range(cls, value: str) -> str:
        value = value.strip()
        if value not in VALID_GRADES:
            raise ValueError(f"grade must be one of {', '.join(VALID_GRADES)}")
        return value

    def to_submission(self) -> RegistrationSubmission:
        return RegistrationSubmission(
            timestamp=self.timestamp,
            email=self.email,
            full_name=self.name,
            grade=self.grade,
            photo_consent=self.photo_consent,
            discord_handle=self.discord,
        )


class SubmitRegistrationRequest(BaseModel):
    sheet_id: str = Field(default="", alias="sheetId")
    data: RegistrationDataModel

    model_config = ConfigDict(populate_by_name=True)


class SubmitRegistrationResponse(BaseModel):
    success: bool


class SubmitRegistrationMultiRequest(BaseModel):
    sheet_ids: List[str] = Field(default_factory=list, alias="sheetIds")
    data: RegistrationDataModel

    model_config = ConfigDict(populate_by_name=True)


class DestinationResultModel(BaseModel):
    sheet_id: str = Field(alias="sheetId")
    ok: bool
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class SubmitRegistrationMultiResponse(BaseModel):
    ok: int
    total: int
    results: List[DestinationResultModel]


@lru_cache(maxsize=1)
def _google_store(settings: Settings) -> GoogleTabularStore:
    return GoogleTabularStore.from_settings(settings)


def get_store(settings: Settings = Depends(get_settings)) -> TabularStore:
    return _google_store(settings)


@lru_cache(maxsize=4)
def _config_store(store: TabularStore, settings: Settings) -> ConfigStore:
    # One instance per store so the resolved config sheet id is reused across requests.
    return ConfigStore(store, settings, locks=_locks)


def get_config_store(
    store: TabularStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ConfigStore:
    return _config_store(store, settings)


def get_registration_sink(store: TabularStore = Depends(get_store)) -> RegistrationSink:
    return RegistrationSink(store, locks=_locks)


def require_admin_secret(
    x_admin_secret: str = Header(default=""),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard for every route that changes the club configuration."""
    try:
        verify_admin_secret(settings, x_admin_secret)
    except AuthorizationError as exc:
        logger.warning("Rejected admin request: %s", exc)
        raise HTTPException(status_code=401, detail="Unauthorized") from exc


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request body", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Server configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Server configuration error"})


def _config_response(academic_year: str, rows: List[ConfigRow]) -> ClubConfigResponse:
    return ClubConfigResponse(
        academicYear=academic_year,
        clubs=[ClubConfigRowModel(**row.as_dict()) for row in rows],
    )


def _save_config(payload: ClubConfigUpdateRequest, config: ConfigStore) -> ClubConfigResponse:
    year = resolve_academic_year()
    updates = [
        ConfigUpdate(club_id=item.club_id, club_name=item.club_name, sheet_id=item.sheet_id)
        for item in payload.updates
    ]
    try:
        config_id = config.ensure_config_document()
        config.upsert_rows(config_id, updates, year)
        rows = config.read_rows(config_id, year)
    except (ConfigurationError, StoreError) as exc:
        logger.exception("Saving club config failed")
        raise HTTPException(status_code=500, detail="Failed to save config") from exc
    return _config_response(year, rows)


@app.get("/api/club-config", response_model=ClubConfigResponse)
def read_club_config(config: ConfigStore = Depends(get_config_store)):
    year = resolve_academic_year()
    try:
        config_id = config.ensure_config_document()
        rows = config.read_rows(config_id, year)
    except (ConfigurationError, StoreError) as exc:
        logger.exception("Loading club config failed")
        raise HTTPException(status_code=500, detail="Failed to load config") from exc
    return _config_response(year, rows)


@app.post(
    "/api/club-config",
    response_model=ClubConfigResponse,
    dependencies=[Depends(require_admin_secret)],
)
def update_club_config(payload: ClubConfigUpdateRequest, config: ConfigStore = Depends(get_config_store)):
    return _save_config(payload, config)


@app.post(
    "/api/admin/save-config",
    response_model=ClubConfigResponse,
    dependencies=[Depends(require_admin_secret)],
)
def admin_save_config(payload: ClubConfigUpdateRequest, config: ConfigStore = Depends(get_config_store)):
    return _save_config(payload, config)


@app.post(
    "/api/create-sheet",
    response_model=CreateSheetResponse,
    dependencies=[Depends(require_admin_secret)],
)
def create_sheet(
    payload: CreateSheetRequest,
    config: ConfigStore = Depends(get_config_store),
    sink: RegistrationSink = Depends(get_registration_sink),
):
    year = resolve_academic_year()
    try:
        created = sink.create_registration_sheet(payload.club_name, year, config)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except (ConfigurationError, StoreError) as exc:
        logger.exception("Creating registration sheet for %s failed", payload.club_name)
        raise HTTPException(status_code=500, detail="Failed to create sheet") from exc
    return CreateSheetResponse(sheetId=created.sheet_id, message=created.message, existing=created.existing)


@app.post("/api/submit-registration", response_model=SubmitRegistrationResponse)
def submit_registration(payload: SubmitRegistrationRequest, sink: RegistrationSink = Depends(get_registration_sink)):
    try:
        sink.submit_to_one(payload.sheet_id, payload.data.to_submission())
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StoreError as exc:
        logger.exception("Submitting registration to %s failed", payload.sheet_id)
        raise HTTPException(status_code=500, detail="Failed to submit registration") from exc
    return SubmitRegistrationResponse(success=True)


@app.post("/api/submit-registration-multi", response_model=SubmitRegistrationMultiResponse)
def submit_registration_multi(
    payload: SubmitRegistrationMultiRequest,
    sink: RegistrationSink = Depends(get_registration_sink),
):
    try:
        outcome = sink.submit_to_many(payload.sheet_ids, payload.data.to_submission())
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return SubmitRegistrationMultiResponse(
        ok=outcome.ok,
        total=outcome.total,
        results=[DestinationResultModel(**result.as_dict()) for result in outcome.results],
    )
