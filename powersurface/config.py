from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "POWERSURFACE_", "case_sensitive": False}

    # Physics
    reference_air_density: float = 1.225

    # Surface fit
    surface_degree: int = 2
    surface_span: float = 0.01

    # Prediction grid
    grid_wind_speed_step: float = 1.0
    grid_air_density_step: float = 0.03

    # Logging
    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
