from .supabase_analytics import SupabaseAnalyticsSink
from .supabase_source import SupabaseCardSource
from .yaml_source import YamlCardSource

__all__ = ["SupabaseAnalyticsSink", "SupabaseCardSource", "YamlCardSource"]
