from pydantic_settings import BaseSettings


class Settings(BaseSettings):
	host: str = "0.0.0.0"
	port: int = 8080
	username: str = ""
	password: str = ""
	realm: str = "FileServer"
	chunk_size: int = 1024 * 1024
	bcrypt_rounds: int = 12
	start_timeout: float = 5.0
	log_file: str = "fileshare.log"
	log_level: str = "INFO"

	class Config:
		env_prefix = "FILESHARE_"
		env_file = ".env"
		env_file_encoding = "utf-8"


settings = Settings()
