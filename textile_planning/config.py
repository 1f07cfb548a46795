import os
import configparser
import urllib.parse
from pathlib import Path

from textile_planning.exceptions import ConfigError

class Config:
    """Configuration manager for the Textile Planning System."""

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

        self._config_dir = Path(os.getenv('TEXTILE_PLANNING_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)

        # Create config directory if it doesn't exist
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)

        # Load config or create default
        if self._config_path.exists():
            self._config.read(self._config_path)
        else:
            self._create_default_config()

        self._initialized = True

    def _create_default_config(self):
        """Create default configuration file."""
        self._config['DATABASE'] = {
            'engine': 'postgresql',
            'host': 'localhost',
            'port': '5432',
            'database': 'textile_planning',
            'username': 'postgres',
            'password': 'postgres',
            'echo': 'False'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['SCHEDULING'] = {
            'max_day_steps': '365',
            'weekend_days': '5,6'  # Saturday, Sunday
        }

        self._config['PLANNING'] = {
            'default_months': '3',
            'hold_months': '3',
            'critical_ratio': '0.5',
            'high_ratio': '1.0',
            'medium_ratio': '2.0',
            'sales_lookback_days': '365',
            'excluded_categories': ''
        }

        self._config['BATCH_PROCESS'] = {
            'report_top_n': '10'
        }

        self._save_config()

    def _save_config(self):
        """Save configuration to file."""
        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def _typed(self, getter, section, key, default):
        try:
            return getter(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_int(self, section, key, default=None):
        return self._typed(self._config.getint, section, key, default)

    def get_float(self, section, key, default=None):
        return self._typed(self._config.getfloat, section, key, default)

    def get_boolean(self, section, key, default=None):
        return self._typed(self._config.getboolean, section, key, default)

    def get_list(self, section, key, default=None):
        """Get a comma separated configuration value as a list of stripped strings."""
        value = self.get(section, key)
        if value is None:
            return list(default or [])
        return [part.strip() for part in value.split(',') if part.strip()]

    def get_db_url(self):
        """Generate SQLAlchemy database URL."""
        url = self.get('DATABASE', 'url')
        if url:
            return url

        engine = self.get('DATABASE', 'engine', 'postgresql')
        username = self.get('DATABASE', 'username', 'postgres')
        password = self.get('DATABASE', 'password', 'postgres')
        host = self.get('DATABASE', 'host', 'localhost')
        port = self.get('DATABASE', 'port', '5432')
        database = self.get('DATABASE', 'database', 'textile_planning')

        password = urllib.parse.quote_plus(password)
        return f"{engine}://{username}:{password}@{host}:{port}/{database}"

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def scheduling_config(self):
        """Get production scheduling configuration."""
        weekend_days = self.get_list('SCHEDULING', 'weekend_days', ['5', '6'])
        try:
            weekend_days = tuple(int(day) for day in weekend_days)
        except ValueError:
            raise ConfigError("SCHEDULING.weekend_days must be weekday numbers (0=Monday)",
                              details={'weekend_days': weekend_days})

        return {
            'max_day_steps': self.get_int('SCHEDULING', 'max_day_steps', 365),
            'weekend_days': weekend_days
        }

    @property
    def planning_config(self):
        """Get inventory planning configuration."""
        return {
            'default_months': self.get_int('PLANNING', 'default_months', 3),
            'hold_months': self.get_int('PLANNING', 'hold_months', 3),
            'critical_ratio': self.get_float('PLANNING', 'critical_ratio', 0.5),
            'high_ratio': self.get_float('PLANNING', 'high_ratio', 1.0),
            'medium_ratio': self.get_float('PLANNING', 'medium_ratio', 2.0),
            'sales_lookback_days': self.get_int('PLANNING', 'sales_lookback_days', 365),
            'excluded_categories': [
                category.lower() for category in self.get_list('PLANNING', 'excluded_categories')
            ]
        }

    @property
    def batch_config(self):
        """Get batch processing configuration."""
        return {
            'report_top_n': self.get_int('BATCH_PROCESS', 'report_top_n', 10)
        }

# Global config instance
config = Config()
