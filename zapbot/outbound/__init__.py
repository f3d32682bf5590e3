# zapbot/outbound/__init__.py
from .gateway import ProviderClient, SendResult, OPEN_STATE, UNKNOWN_STATE
from .errors import ProviderError, ProviderConfigError, ProviderAPIError
from .evolution import EvolutionClient, ConnectionTestResult, WHATSAPP_JID_SUFFIX
from .settings import EvolutionSettings, load_evolution_settings
from .factory import build_evolution_client, get_provider_client, get_provider_factory
