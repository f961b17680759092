# storefront/repos/factory.py
from sqlalchemy.orm import Session

from storefront.repos.gateway import DataGateway
from storefront.repos.rest_gateway import RestGateway
from storefront.repos.sql_gateway import SqlGateway
from storefront.utils.settings import GATEWAY_BACKEND, SUPABASE_SERVICE_ROLE_KEY


def build_gateway(db: Session | None, access_token: str | None = None, service: bool = False) -> DataGateway:
    if GATEWAY_BACKEND == "rest":
        if service:
            return RestGateway(api_key=SUPABASE_SERVICE_ROLE_KEY)
        return RestGateway(access_token=access_token)

    if db is None:
        raise ValueError("The sql gateway needs a database session")
    return SqlGateway(db)
