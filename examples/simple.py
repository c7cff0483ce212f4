#!/usr/bin/env -S uv run python
"""Run: uv run python examples/simple.py"""

import asyncio
from typing import Any

from pydantic import BaseModel

from topicbus import EventBus, EventTypes, LoggerMiddleware, SchemaValidatorMiddleware


class RegisterUserPayload(BaseModel):
    email: str
    plan: str = 'free'


async def main() -> None:
    bus = EventBus(
        name='SimpleExampleBus',
        middlewares=[
            SchemaValidatorMiddleware({'user:register': RegisterUserPayload}),
            LoggerMiddleware(),
        ],
    )

    # 1) Observe every user:* topic via a wildcard pattern, before anything else.
    def on_any_user_topic(*args: Any) -> None:
        print(f'[wildcard] user topic with args={args!r}')

    bus.on('user:*', on_any_user_topic, priority=100)

    # 2) Exact subscription, receives the validated pydantic model.
    def on_register(payload: RegisterUserPayload) -> str:
        print(f'[exact] Creating account for {payload.email} ({payload.plan})')
        return f"user_{payload.email.split('@', maxsplit=1)[0]}"

    bus.on('user:register', on_register)

    # 3) One-shot listener.
    bus.once(EventTypes.APP_READY, lambda: print('[once] app ready'))

    # 4) A failing listener does not stop the others.
    def flaky(_payload: RegisterUserPayload) -> None:
        raise RuntimeError('mail server unavailable')

    bus.on('user:register', flaky, priority=-1)

    # 5) Async listeners are awaited by emit_async().
    async def send_welcome(payload: RegisterUserPayload) -> bool:
        await asyncio.sleep(0.01)
        print(f'[async] welcome mail sent to {payload.email}')
        return True

    bus.on('user:register', send_welcome, priority=-5)

    bus.emit(EventTypes.APP_READY)
    bus.emit(EventTypes.APP_READY)  # nothing listens anymore

    results = await bus.emit_async('user:register', {'email': 'ada@example.com', 'plan': 'pro'})
    for result in results:
        status = 'ok' if result.success else f'error={result.error}'
        print(f'  #{result.listener_id[-4:]} pattern={result.pattern} {status} result={result.result!r}')

    bus.log_summary()


if __name__ == '__main__':
    asyncio.run(main())
