
import asyncio
import datetime
import email.utils
from itertools import count
from typing import Callable, Set

import h11

from tsfileserver import logger
from tsfileserver._version import __version__
from tsfileserver.network.connection import Connection
from tsfileserver.network.listener import Listener


SERVER_IDENT = " ".join(
    [f"ts-fileserver/{__version__}", h11.PRODUCT_ID]
).encode("ascii")


def format_date_time(dt=None):
    """Generate a RFC 7231 / RFC 9110 IMF-fixdate string"""
    if dt is None:
        dt = datetime.datetime.now(datetime.timezone.utc)
    return email.utils.format_datetime(dt, usegmt=True)


class HTTPConnectionWrapper:
    _next_id = count()

    def __init__(self, client_id, stream:Connection, log_callback=None):
        self.log_callback = log_callback
        self.client_id = client_id
        self.stream = stream
        self.conn = h11.Connection(h11.SERVER)
        # A unique id for this connection, to include in debugging output
        # (useful for understanding what's going on if there are multiple
        # simultaneous clients).
        self._obj_id = next(HTTPConnectionWrapper._next_id)

    async def debug(self, *args):
        msg = [str(x) for x in args]
        msg = ' '.join(msg)
        if self.log_callback is not None:
            await self.log_callback(msg)

    async def send(self, event):
        # ConnectionClosed is never sent from here, the server loop closes the stream itself
        assert type(event) is not h11.ConnectionClosed
        data = self.conn.send(event)
        try:
            await self.stream.write(data)
        except BaseException:
            # the peer is gone (or we got cancelled), h11 must not expect more output from us
            self.conn.send_failed()
            raise

    async def _read_from_peer(self):
        if self.conn.they_are_waiting_for_100_continue:
            await self.debug("Sending 100 Continue")
            go_ahead = h11.InformationalResponse(
                status_code=100, headers=self.basic_headers()
            )
            await self.send(go_ahead)
        try:
            data = await self.stream.read_one()
        except (ConnectionError, OSError) as exc:
            await self.debug('[%s] Error reading from peer: %s' % (self.client_id, exc))
            # They've stopped talking to us, h11 treats it as EOF
            data = b""
        self.conn.receive_data(data)

    async def next_event(self):
        while True:
            event = self.conn.next_event()
            if event is h11.NEED_DATA:
                await self._read_from_peer()
                continue
            await self.debug('[%s] Event: %s' % (self.client_id, type(event).__name__))
            return event

    async def shutdown_and_clean_up(self):
        await self.stream.close()

    def basic_headers(self):
        # HTTP requires these headers in all responses
        return [
            ("Date", format_date_time().encode("ascii")),
            ("Server", SERVER_IDENT),
        ]


class HTTPServerHandler:
    """
    Base class for request handlers. One instance serves one connection,
    requests are dispatched to the `do_<METHOD>` coroutine of the subclass.
    """
    def __init__(self):
        self._wrapper:HTTPConnectionWrapper = None
        self._method:str = None

    def get_allowed_methods(self):
        return sorted(name[3:] for name in dir(self) if name.startswith('do_'))

    async def process_request(self, wrapper:HTTPConnectionWrapper, request:h11.Request):
        self._wrapper = wrapper
        method = request.method.decode("ascii")
        self._method = method
        func = getattr(self, f"do_{method}", None)
        if func is None:
            headers = [("Allow", ", ".join(self.get_allowed_methods()).encode("ascii"))]
            return await self.send_text(405, "method not allowed", headers)
        await func(request)

    async def send_response(self, status_code:int, body:bytes, content_type:str, extra_headers=None):
        headers = self._wrapper.basic_headers()
        headers.append(("Content-Type", content_type.encode("ascii")))
        headers.append(("Content-Length", str(len(body)).encode("ascii")))
        if extra_headers is not None:
            headers.extend(extra_headers)
        await self._wrapper.send(h11.Response(status_code=status_code, headers=headers))
        # responses to HEAD never carry a body, h11 enforces it
        if len(body) > 0 and self._method != "HEAD":
            await self._wrapper.send(h11.Data(data=body))
        await self._wrapper.send(h11.EndOfMessage())

    async def send_text(self, status_code:int, text:str, extra_headers=None):
        await self.send_response(
            status_code,
            text.encode("utf-8", "replace"),
            "text/plain; charset=utf-8",
            extra_headers,
        )


class HTTPServer:
    def __init__(self, client_handler:Callable[[], HTTPServerHandler], listener:Listener, log_callback=None):
        self.log_callback = log_callback
        self.listener = listener
        self.client_handler = client_handler

        self.clients:Set[Connection] = set()
        self.tasks:Set[asyncio.Task] = set()
        self.id_counter = 0
        self.__main_task = None

    async def debug(self, *args):
        msg = [str(x) for x in args]
        msg = ' '.join(msg)
        if self.log_callback is not None:
            await self.log_callback(msg)

    async def __aenter__(self):
        await self.listener.start()
        self.__main_task = asyncio.create_task(self.serve())
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.terminate()

    async def terminate(self):
        if self.__main_task is not None:
            self.__main_task.cancel()
            self.__main_task = None
        await self.listener.close()
        for client in list(self.clients):
            await client.close()
        self.clients = set()
        tasks = list(self.tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def __handle_connection(self, connection:Connection):
        client_id = self.id_counter
        self.id_counter += 1
        self.clients.add(connection)
        wrapper = HTTPConnectionWrapper(client_id, connection, log_callback=self.log_callback)
        handler = self.client_handler()
        await self.debug('[%s] Server: New client connected from %s' % (client_id, connection.get_peer_name()))
        try:
            while True:
                conn = wrapper.conn
                if h11.ERROR in (conn.our_state, conn.their_state):
                    break

                if conn.their_state in (h11.MUST_CLOSE, h11.CLOSED):
                    break

                # the client may still be sending a body we answered without reading, drain it first
                if conn.our_state in (h11.MUST_CLOSE, h11.CLOSED) and conn.their_state is not h11.SEND_BODY:
                    break

                if conn.states == {h11.CLIENT: h11.DONE, h11.SERVER: h11.DONE}:
                    conn.start_next_cycle()
                    continue

                event = await wrapper.next_event()
                if type(event) is h11.Request:
                    await handler.process_request(wrapper, event)
                    continue
                if type(event) is h11.ConnectionClosed or event is h11.PAUSED:
                    break
                # Data / EndOfMessage of a request body nobody consumed
        except h11.RemoteProtocolError as e:
            await self.debug('[%s] Server: protocol error: %s' % (client_id, e))
            if wrapper.conn.our_state in (h11.IDLE, h11.SEND_RESPONSE):
                try:
                    await wrapper.send(h11.Response(
                        status_code=e.error_status_hint,
                        headers=wrapper.basic_headers() + [("Content-Length", b"0"), ("Connection", b"close")],
                    ))
                    await wrapper.send(h11.EndOfMessage())
                except Exception as exc:
                    await self.debug('[%s] Server: could not report protocol error: %s' % (client_id, exc))
        except ConnectionError:
            await self.debug('[%s] Server: connection lost' % client_id)
        except Exception:
            logger.exception('[%s] Error while handling connection' % client_id)
        finally:
            await wrapper.shutdown_and_clean_up()
            self.clients.discard(connection)
            await self.debug('[%s] Server: Client disconnected' % client_id)

    async def serve(self):
        async for connection in self.listener.serve():
            task = asyncio.create_task(self.__handle_connection(connection))
            self.tasks.add(task)
            task.add_done_callback(self.tasks.discard)
