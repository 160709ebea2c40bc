import asyncio

import asyncpg
from uuid_utils import UUID

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


# Global connection pools per event loop
asyncpg_pools: dict[int, asyncpg.Pool] = {}


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Initialize each connection with a uuid_utils UUID codec"""

    def _uuid_decoder(value: bytes) -> UUID:
        return UUID(bytes=value)

    def _uuid_encoder(value: UUID) -> bytes:
        return value.bytes

    await conn.set_type_codec(
        'uuid',
        encoder=_uuid_encoder,
        decoder=_uuid_decoder,
        schema='pg_catalog',
        format='binary',
    )


async def get_asyncpg_pool() -> asyncpg.Pool:
    current_loop = asyncio.get_running_loop()
    loop_id = id(current_loop)

    if loop_id in asyncpg_pools:
        return asyncpg_pools[loop_id]

    # Slow path: create new pool (should only happen at startup)
    dsn = settings.DATABASE_URL_ASYNC.replace('postgresql+asyncpg://', 'postgresql://')

    pool = await asyncpg.create_pool(
        dsn,
        min_size=settings.ASYNCPG_POOL_MIN_SIZE,
        max_size=settings.ASYNCPG_POOL_MAX_SIZE,
        command_timeout=settings.ASYNCPG_POOL_COMMAND_TIMEOUT,
        max_inactive_connection_lifetime=settings.ASYNCPG_POOL_MAX_INACTIVE_LIFETIME,
        timeout=settings.ASYNCPG_POOL_TIMEOUT,
        max_queries=settings.ASYNCPG_POOL_MAX_QUERIES,
        init=_init_connection,
    )
    asyncpg_pools[loop_id] = pool

    Logger.base.info(
        f'🏊 [Pool] Created asyncpg pool for loop {loop_id} '
        f'(min={settings.ASYNCPG_POOL_MIN_SIZE}, max={settings.ASYNCPG_POOL_MAX_SIZE})'
    )
    return pool


async def warmup_asyncpg_pool() -> int:
    """Acquire MIN_SIZE connections once so the first events do not pay connect latency"""
    pool = await get_asyncpg_pool()
    connections = []

    try:
        for i in range(settings.ASYNCPG_POOL_MIN_SIZE):
            try:
                connections.append(await pool.acquire(timeout=5.0))
            except asyncio.TimeoutError:
                Logger.base.warning(f'⚠️ [Pool Warmup] Timeout at {i + 1} connections')
                break

        Logger.base.info(
            f'✅ [Pool Warmup] {len(connections)} connections ready '
            f'(size={pool.get_size()}, idle={pool.get_idle_size()})'
        )
        return len(connections)
    finally:
        for conn in connections:
            await pool.release(conn)


async def close_asyncpg_pool() -> None:
    """Close the asyncpg pool bound to the current event loop"""
    loop_id = id(asyncio.get_running_loop())
    pool = asyncpg_pools.pop(loop_id, None)
    if pool is not None:
        await pool.close()
