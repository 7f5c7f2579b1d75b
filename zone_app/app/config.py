from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv
import logging
import os

load_dotenv()

_BUNDLED_PRESETS = Path(__file__).parent / 'projection' / 'DATUM_PRESETS.yaml'


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class Settings:

    # Справочник датумов и EPSG-серий, из которого собирается каталог проекций
    datum_presets_path: str = os.getenv('ZONE_DATUM_PRESETS_PATH', str(_BUNDLED_PRESETS))

    # Проекция по умолчанию, если PRJ нет или он не распознан (CGCS2000 3° GK, CM 117E)
    default_projection_id: str = os.getenv('ZONE_DEFAULT_PROJECTION', 'CGCS2000_3_Degree_GK_Zone_39')

    batch_size: int = int(os.getenv('ZONE_BATCH_SIZE', '100'))
    fallback_to_original: bool = _env_bool('ZONE_FALLBACK_TO_ORIGINAL', False)

    # first_point | all_points | disabled
    wgs84_check: str = os.getenv('ZONE_WGS84_CHECK', 'first_point')
    round_trip_tolerance: float = float(os.getenv('ZONE_ROUND_TRIP_TOLERANCE', '0.001'))

    log_level: str = os.getenv('ZONE_LOG_LEVEL', 'INFO')


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
