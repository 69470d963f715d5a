from http import HTTPStatus
from fastapi import APIRouter, Request
from reaction_api.services.identity_service import client_ip_from_headers

router = APIRouter(prefix="/api/v1", tags=["identity"])


@router.get("/client-ip", status_code=HTTPStatus.OK)
async def get_client_ip(request: Request) -> dict:
    # тот же контракт {"ip": ...}, что ждёт HttpIdentityResolver
    ip = client_ip_from_headers(
        request.headers,
        request.client.host if request.client else None,
    )
    return {"ip": ip}
