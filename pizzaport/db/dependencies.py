from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy.ext.asyncio import  AsyncSession


async def get_session(request: Request) -> AsyncGenerator[AsyncSession,None]:
    session_maker = request.app.state.async_session
    async with session_maker() as session:  # session is closed (and any open txn rolled back) at the end of the with block
        yield session
