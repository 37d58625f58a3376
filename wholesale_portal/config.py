import os
import configparser
from pathlib import Path

DEFAULT_CONFIG_PATH = Path('config') / 'settings.ini'


class Config:
    """Configuration manager for the Wholesale Portal."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_path = Path(os.getenv('PORTAL_CONFIG', str(DEFAULT_CONFIG_PATH)))
        self.reload()

        self._initialized = True

    def _load_defaults(self):
        """Populate the built-in default configuration."""
        self._config['DATABASE'] = {
            'type': 'postgresql',
            'engine': 'postgresql',
            'host': 'localhost',
            'port': '5432',
            'database': 'wholesale_portal',
            'username': 'postgres',
            'password': 'postgres',
            'echo': 'False',
            'pool_size': '10',
            'max_overflow': '20',
            'pool_timeout': '30',
            'pool_recycle': '1800'
        }

        self._config['SUPABASE'] = {
            'url': '',
            'key': ''
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True',
            'file_output': 'True'
        }

        self._config['ORDERING'] = {
            'default_cutoff_time': '08:00',
            'default_cutoff_day_offset': '1',
            'search_weeks': '6',
            'default_locale': 'fr',
            'default_vat_rate': '6',
            'default_order_limit': '50'
        }

    def reload(self, config_path=None):
        """Reload configuration, optionally from a different file."""
        if config_path is not None:
            self._config_path = Path(config_path)
        self._config = configparser.ConfigParser(interpolation=None)
        self._load_defaults()
        # Values from the file override the built-in defaults
        if self._config_path.exists():
            self._config.read(self._config_path)

    def save(self):
        """Save configuration to file."""
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)

    @property
    def path(self):
        return self._config_path

    def _read(self, getter, section, key, default):
        try:
            return getter(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get(self, section, key, default=None):
        """Get configuration value."""
        return self._read(self._config.get, section, key, default)

    def get_int(self, section, key, default=None):
        return self._read(self._config.getint, section, key, default)

    def get_float(self, section, key, default=None):
        return self._read(self._config.getfloat, section, key, default)

    def get_boolean(self, section, key, default=None):
        return self._read(self._config.getboolean, section, key, default)

    def set(self, section, key, value):
        """Set configuration value (in memory; call save() to persist)."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))

    def get_db_type(self):
        """Get the configured database type."""
        db_type = self.get('DATABASE', 'type', 'postgresql').lower()
        # Strip inline comments
        return db_type.split('#')[0].strip()

    def get_db_url(self):
        """Generate SQLAlchemy database URL."""
        url = os.getenv('DATABASE_URL') or self.get('DATABASE', 'url')
        if url:
            return url

        if self.get_db_type() == 'sqlite':
            return f"sqlite:///{self.get('DATABASE', 'database', 'wholesale_portal.db')}"

        engine = self.get('DATABASE', 'engine', 'postgresql')
        username = self.get('DATABASE', 'username', 'postgres')
        password = self.get('DATABASE', 'password', 'postgres')
        host = self.get('DATABASE', 'host', 'localhost')
        port = self.get('DATABASE', 'port', '5432')
        database = self.get('DATABASE', 'database', 'wholesale_portal')

        return f"{engine}://{username}:{password}@{host}:{port}/{database}"

    @property
    def supabase_config(self):
        """Get Supabase credentials, environment first."""
        return {
            'url': os.getenv('SUPABASE_URL') or self.get('SUPABASE', 'url', ''),
            'key': os.getenv('SUPABASE_KEY') or self.get('SUPABASE', 'key', '')
        }

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True),
            'file_output': self.get_boolean('LOGGING', 'file_output', True)
        }

    @property
    def ordering_config(self):
        """Get ordering and delivery scheduling defaults."""
        return {
            'default_cutoff_time': self.get('ORDERING', 'default_cutoff_time', '08:00'),
            'default_cutoff_day_offset': self.get_int('ORDERING', 'default_cutoff_day_offset', 1),
            'search_weeks': self.get_int('ORDERING', 'search_weeks', 6),
            'default_locale': self.get('ORDERING', 'default_locale', 'fr'),
            'default_vat_rate': self.get_float('ORDERING', 'default_vat_rate', 6.0),
            'default_order_limit': self.get_int('ORDERING', 'default_order_limit', 50)
        }

# Global config instance
config = Config()
