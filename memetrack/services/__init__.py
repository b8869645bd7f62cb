# Services package
from memetrack.services.data_service import DataService
from memetrack.services.etl_service import ETLService
from memetrack.services.market_data_service import MarketDataService
from memetrack.services.price_pipeline import PricePipeline

__all__ = [
    "DataService",
    "ETLService",
    "MarketDataService",
    "PricePipeline",
]
