"""
Тесты для main.py - точки входа консольного клиента.
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pythonjsonlogger.json import JsonFormatter

import main


class TestSetupLogging:
    """Тесты для функции setup_logging."""

    def test_setup_logging_text(self):
        with patch('logging.basicConfig') as mock_basic_config:
            main.setup_logging("text")

            mock_basic_config.assert_called_once()
            kwargs = mock_basic_config.call_args.kwargs
            assert kwargs['level'] == logging.INFO
            handler = kwargs['handlers'][0]
            assert not isinstance(handler.formatter, JsonFormatter)
        assert logging.getLogger('apscheduler').level == logging.WARNING

    def test_setup_logging_json(self):
        with patch('logging.basicConfig') as mock_basic_config:
            main.setup_logging("json")
            handler = mock_basic_config.call_args.kwargs['handlers'][0]
            assert isinstance(handler.formatter, JsonFormatter)


class TestMetricsServer:
    @pytest.mark.asyncio
    async def test_run_metrics_server(self):
        with patch('main.start_http_server') as mock_start:
            await main.run_metrics_server(9100)
            mock_start.assert_called_once_with(9100)


class TestMainLoop:
    """Цикл чтения команд."""

    @pytest.mark.asyncio
    async def test_main_dispatches_until_quit(self, token_store):
        lines = iter(["", "help", "dance", "guest", "quit"])
        app = MagicMock()
        app.running = True
        app.dispatch = AsyncMock()

        async def fake_read_line(prompt="> "):
            return next(lines)

        async def dispatch(command):
            if type(command).__name__ == "Quit":
                app.running = False

        app.dispatch.side_effect = dispatch

        with patch('main.setup_logging'), \
             patch('main.METRICS_PORT', None), \
             patch('main.create_token_store', return_value=token_store), \
             patch('main.CanvasApp', return_value=app), \
             patch('main.read_line', side_effect=fake_read_line), \
             patch('builtins.print'):
            await main.main()

        dispatched = [type(c.args[0]).__name__ for c in app.dispatch.await_args_list]
        assert dispatched == ["PlayAsGuest", "Quit"]
        app.session.disconnect.assert_called_once()

    @pytest.mark.asyncio
    async def test_main_stops_on_eof(self, token_store):
        app = MagicMock()
        app.running = True
        app.dispatch = AsyncMock()

        with patch('main.setup_logging'), \
             patch('main.METRICS_PORT', None), \
             patch('main.create_token_store', return_value=token_store), \
             patch('main.CanvasApp', return_value=app), \
             patch('main.read_line', AsyncMock(side_effect=EOFError)), \
             patch('builtins.print'):
            await main.main()

        app.dispatch.assert_not_awaited()
        app.session.disconnect.assert_called_once()
