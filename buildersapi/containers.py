from dependency_injector import containers, providers

from buildersapi.config import Settings
from buildersapi.database.session import get_db
from buildersapi.services.ad_pricing_service import AdPricingService
from buildersapi.services.auth_service import AuthService
from buildersapi.services.cron_service import CronService
from buildersapi.services.forecast_service import ForecastService
from buildersapi.services.listing_service import ListingService
from buildersapi.services.redemption_service import RedemptionService
from buildersapi.services.reward_service import RewardService
from buildersapi.services.token_service import TokenService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Database session."""

    get_db = providers.Resource(get_db)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    auth_service = providers.Factory(AuthService, db=repositories.get_db, settings=config.config)
    token_service = providers.Factory(TokenService, db=repositories.get_db, settings=config.config)
    ad_pricing_service = providers.Factory(AdPricingService, db=repositories.get_db, settings=config.config)
    listing_service = providers.Factory(ListingService, db=repositories.get_db, settings=config.config)
    redemption_service = providers.Factory(RedemptionService, db=repositories.get_db, settings=config.config)
    forecast_service = providers.Factory(ForecastService, db=repositories.get_db, settings=config.config)
    reward_service = providers.Factory(RewardService, db=repositories.get_db, settings=config.config)
    cron_service = providers.Factory(CronService, db=repositories.get_db, settings=config.config)


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "buildersapi.routers.token_router",
            "buildersapi.routers.ad_router",
            "buildersapi.routers.service_listing_router",
            "buildersapi.routers.forecast_router",
            "buildersapi.routers.reward_router",
            "buildersapi.routers.admin_router",
            "buildersapi.routers.cron_router",
        ],
    )

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )
