"""
Tests for Settings loading from the environment.

Lists may be given as comma-separated strings or JSON lists; nested sections
use a double underscore (BOT__..., OLLAMA__...).
"""

import pytest

from ollamacord.config.settings import BotSettings, OllamaSettings, Settings, load_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "BOT__TOKEN",
        "BOT__ALLOWED_CHANNEL_IDS",
        "BOT__RESET_COMMANDS",
        "BOT__REQUIRES_MENTION",
        "OLLAMA__MODEL",
        "OLLAMA__SERVERS",
        "OLLAMA__SYSTEM",
        "OLLAMA__USE_SYSTEM",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.bot.name == "OllamaCord"
        assert settings.bot.allowed_channel_ids == []
        assert settings.bot.reset_commands == [".clear", ".reset"]
        assert settings.bot.message_limit == 2000
        assert settings.ollama.model == "llama3"
        assert settings.ollama.servers == ["http://localhost:11434"]
        assert settings.ollama.use_system is False
        assert settings.ollama.use_model_system is False
        assert settings.ollama.request_timeout is None


class TestEnvironment:
    def test_comma_separated_servers(self, clean_env):
        clean_env.setenv("OLLAMA__SERVERS", "http://a:11434, http://b:11434")
        settings = Settings(_env_file=None)
        assert settings.ollama.servers == ["http://a:11434", "http://b:11434"]

    def test_json_list_channel_ids(self, clean_env):
        clean_env.setenv("BOT__ALLOWED_CHANNEL_IDS", "[111, 222]")
        settings = Settings(_env_file=None)
        assert settings.bot.allowed_channel_ids == [111, 222]

    def test_comma_separated_channel_ids(self, clean_env):
        clean_env.setenv("BOT__ALLOWED_CHANNEL_IDS", "111,222")
        settings = Settings(_env_file=None)
        assert settings.bot.allowed_channel_ids == [111, 222]

    def test_flags_and_scalars(self, clean_env):
        clean_env.setenv("BOT__REQUIRES_MENTION", "true")
        clean_env.setenv("OLLAMA__MODEL", "mistral")
        clean_env.setenv("OLLAMA__USE_SYSTEM", "1")
        clean_env.setenv("LOG_LEVEL", "DEBUG")
        settings = Settings(_env_file=None)
        assert settings.bot.requires_mention is True
        assert settings.ollama.model == "mistral"
        assert settings.ollama.use_system is True
        assert settings.log_level == "DEBUG"

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / "bot.env"
        env_file.write_text(
            "BOT__TOKEN=secret\n"
            "OLLAMA__SERVERS=http://gpu1:11434,http://gpu2:11434\n"
            "BOT__RESET_COMMANDS=.new\n"
        )
        settings = load_settings(env_file=env_file)
        assert settings.bot.token == "secret"
        assert settings.ollama.servers == ["http://gpu1:11434", "http://gpu2:11434"]
        assert settings.bot.reset_commands == [".new"]


class TestEnvironmentIsolation:
    """Sections only read their own prefixed variables."""

    @pytest.fixture
    def unrelated_env(self, clean_env):
        clean_env.setenv("MODEL", "unrelated-model")
        clean_env.setenv("SERVERS", "http://unrelated:1")
        clean_env.setenv("NAME", "my-hostname")
        clean_env.setenv("TOKEN", "not-a-discord-token")
        clean_env.setenv("SYSTEM", "unrelated")
        return clean_env

    def test_unprefixed_variables_are_ignored(self, unrelated_env):
        settings = Settings(_env_file=None)
        assert settings.ollama.model == "llama3"
        assert settings.ollama.servers == ["http://localhost:11434"]
        assert settings.ollama.system is None
        assert settings.bot.name == "OllamaCord"
        assert settings.bot.token == ""

    def test_unprefixed_variables_ignored_alongside_prefixed_ones(self, unrelated_env):
        unrelated_env.setenv("OLLAMA__USE_SYSTEM", "true")
        settings = Settings(_env_file=None)
        assert settings.ollama.use_system is True
        assert settings.ollama.model == "llama3"

    def test_section_reads_its_prefix_directly(self, clean_env):
        clean_env.setenv("OLLAMA__MODEL", "mistral")
        clean_env.setenv("BOT__TOKEN", "secret")
        assert OllamaSettings().model == "mistral"
        assert BotSettings().token == "secret"


class TestValidation:
    def test_rejects_zero_message_limit(self):
        with pytest.raises(ValueError):
            BotSettings(message_limit=0)

    def test_rejects_non_positive_poll_interval(self):
        with pytest.raises(ValueError):
            OllamaSettings(poll_interval=0)

    def test_list_values_pass_through(self):
        assert OllamaSettings(servers=["http://x:1"]).servers == ["http://x:1"]
