"""HTTP control and health server for the bot process.

Unauthenticated liveness routes (``/``, ``/health``, ``/status``, ``/ping``)
plus the ``/control/*`` API the dashboard uses to query and steer the bot.
Control routes require the shared secret in the ``X-Control-Secret`` header.
"""

import asyncio
import hmac
import logging
import time
from typing import Any

import discord
from aiohttp import web

logger = logging.getLogger("discord_bot.control_server")

SECRET_HEADER = "X-Control-Secret"


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _guild_summary(guild: discord.Guild) -> dict[str, Any]:
    return {
        "id": str(guild.id),
        "name": guild.name,
        "memberCount": guild.member_count or 0,
        "iconUrl": guild.icon.url if guild.icon else None,
    }


class ControlServer:
    """aiohttp app bound to a running bot"""

    def __init__(
        self,
        bot: Any,
        secret: str = "",
        host: str = "0.0.0.0",
        port: int = 8080,
    ) -> None:
        self.bot = bot
        self.secret = secret
        self.host = host
        self.port = port
        self.app = web.Application(middlewares=[self._control_auth])
        self.runner: web.AppRunner | None = None
        self._start_time = time.time()
        self._heartbeat_task: asyncio.Task | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        router = self.app.router
        router.add_get("/", self.handle_root)
        router.add_get("/health", self.handle_health)
        router.add_get("/status", self.handle_status)
        router.add_get("/ping", self.handle_ping)

        router.add_get("/control/bot-info", self.handle_bot_info)
        router.add_get("/control/guilds", self.handle_guilds)
        router.add_get("/control/guild/{guild_id}", self.handle_guild)
        router.add_post("/control/guild/{guild_id}/leave", self.handle_leave_guild)
        router.add_post("/control/reload-twitch", self.handle_reload_twitch)
        router.add_post("/control/reload-tracking", self.handle_reload_tracking)
        router.add_post("/control/check-twitch", self.handle_check_twitch)

    @web.middleware
    async def _control_auth(self, request: web.Request, handler):
        if request.path.startswith("/control/"):
            if not self.secret:
                return _error(503, "Control API is not configured")
            provided = request.headers.get(SECRET_HEADER, "")
            if not hmac.compare_digest(provided.encode(), self.secret.encode()):
                logger.warning(f"Rejected control request to {request.path} from {request.remote}")
                return _error(401, "Unauthorized")
        try:
            return await handler(request)
        except web.HTTPException as e:
            if request.path.startswith("/control/"):
                return _error(e.status, e.reason)
            raise
        except Exception as e:
            logger.exception(f"Control request {request.method} {request.path} failed: {e}")
            return _error(500, "Internal server error")

    def _ready(self) -> bool:
        return self.bot is not None and self.bot.is_ready()

    def _get_guild(self, request: web.Request) -> discord.Guild | None:
        raw = request.match_info["guild_id"]
        if not raw.isdigit():
            return None
        return self.bot.get_guild(int(raw))

    # ---- liveness ----

    async def handle_root(self, request: web.Request) -> web.Response:
        return web.json_response({"service": "devbadge-bot", "status": "running"})

    async def handle_health(self, request: web.Request) -> web.Response:
        """Always 200 (liveness); ``ready`` reports the gateway state"""
        ready = self._ready()
        return web.json_response({"status": "healthy" if ready else "starting", "ready": ready})

    async def handle_status(self, request: web.Request) -> web.Response:
        ready = self._ready()
        return web.json_response(
            {
                "service": "devbadge-bot",
                "bot_id": str(self.bot.user.id) if ready and self.bot.user else None,
                "uptime_seconds": int(time.time() - self._start_time),
                "guilds": len(self.bot.guilds) if ready else 0,
            }
        )

    async def handle_ping(self, request: web.Request) -> web.Response:
        return web.Response(text="pong")

    # ---- control ----

    async def handle_bot_info(self, request: web.Request) -> web.Response:
        if not self._ready():
            return _error(503, "Bot is not ready")
        user = self.bot.user
        scheduler = getattr(self.bot, "scheduler", None)
        auto_execution = None
        if scheduler is not None:
            last = scheduler.last_execution
            nxt = scheduler.next_execution()
            auto_execution = {
                "enabled": scheduler.enabled,
                "lastExecution": last.isoformat() if last else None,
                "nextExecution": nxt.isoformat() if nxt else None,
            }
        return web.json_response(
            {
                "id": str(user.id),
                "username": user.name,
                "tag": str(user),
                "avatarUrl": user.display_avatar.url,
                "guildCount": len(self.bot.guilds),
                "userCount": sum(g.member_count or 0 for g in self.bot.guilds),
                "latencyMs": round(self.bot.latency * 1000),
                "uptimeSeconds": int(time.time() - self._start_time),
                "autoExecution": auto_execution,
            }
        )

    async def handle_guilds(self, request: web.Request) -> web.Response:
        if not self._ready():
            return _error(503, "Bot is not ready")
        return web.json_response({"guilds": [_guild_summary(g) for g in self.bot.guilds]})

    async def handle_guild(self, request: web.Request) -> web.Response:
        guild = self._get_guild(request)
        if guild is None:
            return _error(404, "Bot is not in this guild")
        info = _guild_summary(guild)
        info.update(
            {
                "ownerId": str(guild.owner_id) if guild.owner_id else None,
                "createdAt": guild.created_at.isoformat(),
                "channelCount": len(guild.channels),
                "roleCount": len(guild.roles),
                "textChannels": [
                    {"id": str(c.id), "name": c.name} for c in guild.text_channels
                ],
            }
        )
        return web.json_response(info)

    async def handle_leave_guild(self, request: web.Request) -> web.Response:
        guild = self._get_guild(request)
        if guild is None:
            return _error(404, "Bot is not in this guild")
        try:
            await guild.leave()
        except discord.HTTPException as e:
            logger.error(f"Failed to leave guild {guild.id}: {e}")
            return _error(502, f"Failed to leave guild: {e}")
        logger.info(f"Left guild {guild.name} ({guild.id}) via control API")
        return web.json_response({"success": True})

    async def handle_reload_twitch(self, request: web.Request) -> web.Response:
        monitor = getattr(self.bot, "twitch_monitor", None)
        if monitor is None:
            return _error(503, "Twitch notifications are not configured")
        count = monitor.reload()
        return web.json_response({"success": True, "guilds": count})

    async def handle_reload_tracking(self, request: web.Request) -> web.Response:
        count = self.bot.tracking.reload()
        return web.json_response({"success": True, "guilds": count})

    async def handle_check_twitch(self, request: web.Request) -> web.Response:
        monitor = getattr(self.bot, "twitch_monitor", None)
        if monitor is None:
            return _error(503, "Twitch notifications are not configured")
        notified = await monitor.check()
        return web.json_response({"success": True, "notified": notified})

    # ---- lifecycle ----

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(300)
            uptime = int(time.time() - self._start_time)
            ready = self._ready()
            guilds = len(self.bot.guilds) if ready else 0
            logger.info(f"Heartbeat: uptime={uptime}s, ready={ready}, guilds={guilds}")

    async def start(self) -> None:
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()
            site = web.TCPSite(self.runner, self.host, self.port)
            await site.start()
            self._heartbeat_task = asyncio.create_task(self._heartbeat())

            logger.info(f"Control server started on {self.host}:{self.port}")
            if not self.secret:
                logger.warning("CONTROL_SECRET is not set; /control routes will answer 503")
        except Exception as e:
            logger.exception(f"Failed to start control server: {e}")
            raise

    async def stop(self) -> None:
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
        if self.runner:
            try:
                await self.runner.cleanup()
                logger.info("Control server stopped")
            except Exception as e:
                logger.exception(f"Error stopping control server: {e}")
