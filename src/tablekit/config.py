"""
XML server configuration.

A config file lists servers and the databases reachable on each one:

    <config>
      <server name="db1.internal" port="3306">
        <database name="inventory">
          <user>app</user>
          <password>secret</password>
        </database>
      </server>
    </config>

`<server>` accepts an optional `driver` attribute (`mysql` by default).
"""
import logging
import pathlib
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from tablekit.exceptions import ConfigurationError
from tablekit.options import DatabaseOptions

__all__ = ['ConfigDatabase', 'ConfigServer', 'ServerConfig', 'load_config', 'parse_config']

logger = logging.getLogger(__name__)


@dataclass
class ConfigDatabase:
    name: str
    user: str = ''
    password: str = ''


@dataclass
class ConfigServer:
    name: str
    port: int = 0
    driver: str = 'mysql'
    databases: list[ConfigDatabase] = field(default_factory=list)

    def database(self, name: str) -> ConfigDatabase:
        for database in self.databases:
            if database.name == name:
                return database
        raise ConfigurationError(f'Config server {self.name} missing database {name}')


@dataclass
class ServerConfig:
    servers: list[ConfigServer] = field(default_factory=list)

    def server(self, name: str) -> ConfigServer:
        for server in self.servers:
            if server.name == name:
                return server
        raise ConfigurationError(f'Config missing server {name}')

    def options_for(self, server: str, database: str, **kw) -> DatabaseOptions:
        """Build connection options for one database of one server.

        Keyword arguments override the configured values.
        """
        config_server = self.server(server)
        config_database = config_server.database(database)
        values = {
            'drivername': config_server.driver,
            'hostname': config_server.name,
            'port': config_server.port,
            'database': config_database.name,
            'username': config_database.user,
            'password': config_database.password,
        }
        values.update(kw)
        try:
            return DatabaseOptions(**values)
        except ValueError as err:
            raise ConfigurationError(f'Invalid config for {server}/{database}: {err}') from err


def _text(element: ET.Element, tag: str) -> str:
    child = element.find(tag)
    return (child.text or '').strip() if child is not None else ''


def parse_config(text: str | bytes) -> ServerConfig:
    """Parse XML config text.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as err:
        raise ConfigurationError(f'Malformed server config: {err}') from err

    servers = []
    for node in root.iter('server'):
        name = node.get('name')
        if not name:
            raise ConfigurationError('Config server entry without a name')
        port = node.get('port') or '0'
        if not port.isdigit():
            raise ConfigurationError(f'Config server {name} has invalid port {port!r}')
        databases = [
            ConfigDatabase(name=db.get('name', ''), user=_text(db, 'user'),
                           password=_text(db, 'password'))
            for db in node.iter('database')
        ]
        servers.append(ConfigServer(name=name, port=int(port),
                                    driver=node.get('driver', 'mysql'),
                                    databases=databases))
    logger.debug(f'Parsed config with {len(servers)} servers')
    return ServerConfig(servers)


def load_config(path: str | pathlib.Path) -> ServerConfig:
    """Read and parse an XML config file.
    """
    path = pathlib.Path(path)
    try:
        data = path.read_bytes()
    except OSError as err:
        raise ConfigurationError(f'Cannot read server config {path}: {err}') from err
    return parse_config(data)
