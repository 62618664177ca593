from fastapi import Request

from dex_autotrader.app_context import AppContext


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx
