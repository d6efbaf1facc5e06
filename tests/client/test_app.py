import io

import pytest
from PIL import Image

from client.app import CanvasApp
from core import commands as cmd
from core.exceptions import RejectionError
from core.models import Region
from core.session import SessionMachine
from core.sync import SyncScheduler


@pytest.fixture
def app(fake_api, token_store, sink, fake_scheduler_factory, tmp_path):
    def sync_factory(api, viewport, sink):
        return SyncScheduler(api, viewport, sink, scheduler_factory=fake_scheduler_factory)
    session = SessionMachine(fake_api, token_store, sink, sync_factory=sync_factory)
    return CanvasApp(fake_api, token_store, sink, session=session, exports_dir=tmp_path, png_scale=2)


async def _connect(app, guest=True):
    if guest:
        await app.dispatch(cmd.PlayAsGuest())
    else:
        await app.dispatch(cmd.Login("a@b.c", "secret"))
    await app.session.sync.drain()


async def _shutdown(app):
    if app.session.sync is not None:
        await app.session.sync.drain()
    await app.dispatch(cmd.Quit())


@pytest.mark.asyncio
async def test_commands_require_session(app, sink, fake_api):
    notice = await app.dispatch(cmd.PlacePixel(5, 5))
    assert notice == "Not connected: login or play as guest first"
    assert sink.notices == [notice]
    assert fake_api.place_calls == []


@pytest.mark.asyncio
async def test_unknown_command(app):
    with pytest.raises(ValueError):
        await app.dispatch(object())


@pytest.mark.asyncio
async def test_guest_notice(app, sink):
    await _connect(app)
    assert sink.notices == ["Playing as guest: login to chat and get a shorter cooldown"]
    await _shutdown(app)


@pytest.mark.asyncio
async def test_place_uses_selected_color_and_mood(app, fake_api):
    await _connect(app, guest=False)
    await app.dispatch(cmd.SelectColor(5))
    await app.dispatch(cmd.SelectMood(4))

    notice = await app.dispatch(cmd.PlacePixel(25, 35))

    assert notice is None
    assert fake_api.place_calls == [(2, 3, 5, 4, "sess_server")]
    await _shutdown(app)


@pytest.mark.asyncio
async def test_second_place_during_cooldown_reports_wait(app, fake_api):
    await _connect(app, guest=False)
    await app.dispatch(cmd.PlacePixel(5, 5))
    notice = await app.dispatch(cmd.PlacePixel(15, 5))
    assert notice.startswith("Please wait for cooldown!")
    assert len(fake_api.place_calls) == 1
    await _shutdown(app)


@pytest.mark.asyncio
async def test_server_rejection_reason_is_shown(app, fake_api, sink):
    fake_api.place_error = RejectionError("Please wait for cooldown", status=429)
    await _connect(app)
    notice = await app.dispatch(cmd.PlacePixel(5, 5))
    assert notice == "Please wait for cooldown"
    assert app.session.context.cooldown.is_active() is False
    await _shutdown(app)


@pytest.mark.asyncio
async def test_invalid_color_and_mood(app):
    await _connect(app)
    assert await app.dispatch(cmd.SelectColor(16)) == "Color must be 0..15"
    assert await app.dispatch(cmd.SelectMood(-1)) == "Mood must be 0..4"
    assert app.session.context.color_index == 0
    assert app.session.context.mood_index == 2
    await _shutdown(app)


@pytest.mark.asyncio
async def test_zoom_triggers_region_refresh(app, fake_api, sink):
    await _connect(app)
    await app.dispatch(cmd.ZoomIn())
    await app.session.sync.drain()
    assert app.session.context.viewport.zoom == pytest.approx(1.5)
    assert fake_api.region_calls[-1] == Region(8, 8, 34, 34)
    assert sink.regions[-1][0] == Region(8, 8, 34, 34)

    await app.dispatch(cmd.Pan(-100, 0))
    await app.dispatch(cmd.ResetView())
    await app.session.sync.drain()
    assert sink.regions[-1][0] == Region(0, 0, 50, 50)
    await _shutdown(app)


@pytest.mark.asyncio
async def test_guest_cannot_chat(app, fake_api):
    await _connect(app)
    notice = await app.dispatch(cmd.SendChat("hello"))
    assert notice == "Please login to chat"
    assert fake_api.chat_sent == []
    await _shutdown(app)


@pytest.mark.asyncio
async def test_chat_sends_and_refreshes(app, fake_api):
    await _connect(app, guest=False)
    assert await app.dispatch(cmd.SendChat("  hello  ")) is None
    await app.session.sync.drain()
    assert fake_api.chat_sent == [("hello", "sess_server")]
    assert fake_api.calls["chat"] == 2
    assert await app.dispatch(cmd.SendChat("   ")) is None
    assert len(fake_api.chat_sent) == 1
    await _shutdown(app)


@pytest.mark.asyncio
async def test_network_error_notice(app, fake_api):
    await _connect(app, guest=False)
    fake_api.fail = {"send_chat"}
    assert await app.dispatch(cmd.SendChat("hi")) == "Network error, try again later"
    await _shutdown(app)


@pytest.mark.asyncio
async def test_failed_login_notice(app, fake_api):
    fake_api.auth_error = RejectionError("Invalid credentials", status=401)
    assert await app.dispatch(cmd.Login("a@b.c", "bad")) == "Invalid credentials"
    assert not app.session.is_connected


@pytest.mark.asyncio
async def test_logout_disconnects(app, token_store):
    await _connect(app, guest=False)
    await app.dispatch(cmd.Logout())
    assert not app.session.is_connected
    assert token_store.token is None


@pytest.mark.asyncio
async def test_export_png(app, fake_api, tmp_path):
    buffer = io.BytesIO()
    Image.new("RGB", (50, 50), (0, 0, 0)).save(buffer, format="PNG")
    fake_api.png = buffer.getvalue()

    notice = await app.dispatch(cmd.ExportPng())

    assert notice == f"Saved {tmp_path / 'canvas.png'}"
    with Image.open(tmp_path / "canvas.png") as img:
        assert img.size == (100, 100)


@pytest.mark.asyncio
async def test_export_video(app, fake_api, tmp_path):
    target = tmp_path / "custom.mp4"
    assert await app.dispatch(cmd.ExportVideo(target)) == f"Saved {target}"
    assert target.read_bytes() == fake_api.video

    fake_api.fail = {"export_video"}
    notice = await app.dispatch(cmd.ExportVideo())
    assert notice == "Failed to generate video. Ensure FFmpeg is installed."


@pytest.mark.asyncio
async def test_export_transport_error(app, fake_api):
    fake_api.fail = {"export_png"}
    assert await app.dispatch(cmd.ExportPng()) == "Network error, try again later"


@pytest.mark.asyncio
async def test_history(app, fake_api):
    text = await app.dispatch(cmd.ViewHistory())
    assert text.startswith("Previous Episodes:")
    fake_api.history = []
    assert await app.dispatch(cmd.ViewHistory()) == "No history available"


@pytest.mark.asyncio
async def test_quit_stops_app(app, fake_scheduler_factory):
    await _connect(app)
    await app.dispatch(cmd.Quit())
    assert app.running is False
    assert fake_scheduler_factory.created[0].shutdown_called
