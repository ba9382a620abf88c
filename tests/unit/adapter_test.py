from datetime import datetime, timezone
from ddt import ddt, data, unpack
from mockito import mock, unstub, verify, verifyZeroInteractions, when
from pathlib import Path
import requests
from tempfile import TemporaryDirectory
from unittest import TestCase

from docrepo.adapter import CachedAdapter, create
from docrepo.cache import InMemoryCache
from docrepo.model import Request, Response
from docrepo.results import Doc, GatewayError, HttpError, Redirect
from docrepo.transport import Transport, TransportFailure


NOW = datetime(2017, 7, 2, 12, 0, 0, tzinfo=timezone.utc)
PAST = 'Sun, 02 Jul 2017 11:00:00 GMT'
FUTURE = 'Sun, 02 Jul 2017 13:00:00 GMT'
D1 = 'Sat, 01 Jul 2017 18:18:33 GMT'


def response(status=200, reason='OK', body=b'', **headers):
    return Response(status=status, reason=reason, headers={k.replace('_', '-'): v for k, v in headers.items()},
                    body=body)


class AdapterTestCase(TestCase):
    def setUp(self):
        self.transport = mock(Transport)
        self.cache = InMemoryCache()

    def tearDown(self):
        unstub()

    def adapter(self, cache=None, **kw):
        return CachedAdapter('x.test', cache=cache, transport=self.transport, clock=lambda: NOW, **kw)

    def respond(self, uri, result, **headers):
        when(self.transport).send(Request(uri=uri, headers=headers)).thenReturn(result)


class TestCreatingAdapter(AdapterTestCase):
    def test_cache_key_is_host_and_uri(self):
        adapter = self.adapter()

        self.assertEqual('x.test:/a.doc', adapter.cache_key('/a.doc'))
        self.assertEqual(adapter.cache_key('/a.doc'), adapter.cache_key('/a.doc'))
        self.assertEqual('x.test:/b.doc', adapter.cache_key('/b.doc'))

    def test_copies_and_freezes_cache_options(self):
        cache_options = {'any': 'opts'}
        adapter = self.adapter(cache_options=cache_options)

        cache_options['any'] = 'changed'
        self.assertEqual({'any': 'opts'}, dict(adapter.cache_options))
        with self.assertRaises(TypeError):
            adapter.cache_options['other'] = 'opts'

    def test_builds_a_transport_for_the_host(self):
        adapter = CachedAdapter('any.host', read_timeout=3)

        self.assertEqual('any.host', adapter.host)
        self.assertEqual('any.host', adapter.transport.host)
        self.assertEqual(3, adapter.transport.opts['read_timeout'])


class TestClassification(AdapterTestCase):
    def test_document(self):
        self.respond('/a.doc', response(200, body=b'hello'))

        result = self.adapter().retrieve('/a.doc')

        self.assertIsInstance(result, Doc)
        self.assertEqual(200, result.code)
        self.assertEqual('hello', result.content)
        self.assertEqual('/a.doc', result.uri)

    def test_redirect(self):
        self.respond('/a.doc', response(302, 'Found', Location='https://y.test/b'))

        result = self.adapter().retrieve('/a.doc')

        self.assertIsInstance(result, Redirect)
        self.assertEqual(302, result.code)
        self.assertEqual('https://y.test/b', result.url)

    def test_not_found(self):
        self.respond('/a.doc', response(404, 'Not Found', body=b'Any Error Details'))

        result = self.adapter().retrieve('/a.doc')

        self.assertIsInstance(result, HttpError)
        self.assertTrue(result.is_not_found)
        self.assertEqual('404 "Not Found"', str(result))
        self.assertEqual('Any Error Details', result.details)

    def test_server_error(self):
        self.respond('/a.doc', response(500, 'Internal Server Error'))

        result = self.adapter().retrieve('/a.doc')

        self.assertIsInstance(result, HttpError)
        self.assertFalse(result.is_not_found)
        self.assertEqual(500, result.code)

    def test_timeout(self):
        cause = requests.exceptions.ReadTimeout('execution expired')
        when(self.transport).send(...).thenRaise(TransportFailure(504, cause))

        result = self.adapter().retrieve('/a.doc')

        self.assertIsInstance(result, GatewayError)
        self.assertEqual(504, result.code)
        self.assertEqual('504 "Gateway Timeout"', str(result))
        self.assertEqual('execution expired', result.details)
        self.assertIs(cause, result.cause)


class TestCaching(AdapterTestCase):
    def test_without_a_cache_every_retrieval_hits_the_network(self):
        self.respond('/a.doc', response(200, body=b'hello', Expires=FUTURE))
        adapter = self.adapter()

        adapter.retrieve('/a.doc')
        adapter.retrieve('/a.doc')

        verify(self.transport, times=2).send(Request(uri='/a.doc', headers={}))

    def test_fresh_entries_are_reused(self):
        self.respond('/a.doc', response(200, body=b'hello', Expires=FUTURE))
        adapter = self.adapter(cache=self.cache)

        adapter.retrieve('/a.doc')
        result = adapter.retrieve('/a.doc')

        self.assertEqual('hello', result.content)
        verify(self.transport, times=1).send(...)
        self.assertEqual(['x.test:/a.doc'], self.cache.keys())

    def test_entries_without_expires_never_expire(self):
        self.cache.write('x.test:/a.doc', response(200, body=b'cached', ETag='"X"'), {})

        result = self.adapter(cache=self.cache).retrieve('/a.doc')

        self.assertEqual('cached', result.content)
        verifyZeroInteractions(self.transport)

    def test_cache_options_reach_the_store(self):
        self.respond('/a.doc', response(200, body=b'hello'))

        self.adapter(cache=self.cache, cache_options={'any': 'opts'}).retrieve('/a.doc')

        self.assertEqual({'any': 'opts'}, dict(self.cache.options['x.test:/a.doc']))

    def test_304_merges_headers_and_keeps_the_body(self):
        self.cache.write('x.test:/a.doc',
                         response(200, body=b'cached', ETag='"X"', Last_Modified=D1, Expires=PAST), {})
        self.respond('/a.doc',
                     response(304, 'Not Modified', ETag='"Y"', Expires=FUTURE),
                     **{'If-None-Match': '"X"', 'If-Modified-Since': D1})

        result = self.adapter(cache=self.cache).retrieve('/a.doc')

        self.assertIsInstance(result, Doc)
        self.assertEqual(200, result.code)
        self.assertEqual('"Y"', result.etag)
        self.assertEqual('cached', result.content)
        cached = self.cache['x.test:/a.doc']
        self.assertEqual('"Y"', cached.headers['ETag'])
        self.assertEqual(FUTURE, cached.headers['Expires'])
        self.assertEqual(D1, cached.headers['Last-Modified'])
        self.assertEqual(b'cached', cached.body)

    def test_refreshed_entries_are_fresh_again(self):
        self.cache.write('x.test:/a.doc', response(200, body=b'cached', ETag='"X"', Expires=PAST), {})
        self.respond('/a.doc', response(304, 'Not Modified', Expires=FUTURE), **{'If-None-Match': '"X"'})
        adapter = self.adapter(cache=self.cache)

        adapter.retrieve('/a.doc')
        adapter.retrieve('/a.doc')

        verify(self.transport, times=1).send(...)

    def test_a_new_response_replaces_the_entry(self):
        self.cache.write('x.test:/a.doc',
                         response(200, body=b'cached', ETag='"X"', Last_Modified=D1, Expires=PAST), {})
        fresh = response(200, body=b'updated', ETag='"Z"', Expires=FUTURE)
        self.respond('/a.doc', fresh, **{'If-None-Match': '"X"', 'If-Modified-Since': D1})

        result = self.adapter(cache=self.cache).retrieve('/a.doc')

        self.assertEqual('updated', result.content)
        self.assertEqual('"Z"', result.etag)
        self.assertIsNone(result.last_modified)
        self.assertEqual(fresh, self.cache['x.test:/a.doc'])
        self.assertNotIn('Last-Modified', self.cache['x.test:/a.doc'].headers)

    def test_an_error_replaces_the_entry(self):
        self.cache.write('x.test:/a.doc', response(200, body=b'cached', ETag='"X"', Expires=PAST), {})
        self.respond('/a.doc', response(404, 'Not Found'), **{'If-None-Match': '"X"'})

        result = self.adapter(cache=self.cache).retrieve('/a.doc')

        self.assertTrue(result.is_not_found)
        self.assertEqual(404, self.cache['x.test:/a.doc'].status)

    def test_failed_revalidation_leaves_the_entry(self):
        cached = response(200, body=b'cached', ETag='"X"', Expires=PAST)
        self.cache.write('x.test:/a.doc', cached, {})
        when(self.transport).send(...).thenRaise(TransportFailure(502, requests.exceptions.SSLError('Any')))

        result = self.adapter(cache=self.cache).retrieve('/a.doc')

        self.assertIsInstance(result, GatewayError)
        self.assertEqual(502, result.code)
        self.assertIs(cached, self.cache['x.test:/a.doc'])

    def test_failed_fetch_caches_nothing(self):
        when(self.transport).send(...).thenRaise(TransportFailure(520, OSError('Any')))

        result = self.adapter(cache=self.cache).retrieve('/a.doc')

        self.assertEqual(520, result.code)
        self.assertEqual([], self.cache.keys())


@ddt
class TestRefresh(AdapterTestCase):
    @data(
        ({'ETag': '"X"', 'Last-Modified': D1, 'Date': PAST}, {'If-None-Match': '"X"', 'If-Modified-Since': D1}),
        ({'ETag': '"X"', 'Date': PAST}, {'If-None-Match': '"X"', 'If-Modified-Since': PAST}),
        ({'Last-Modified': D1}, {'If-Modified-Since': D1}),
        ({'ETag': '"X"'}, {'If-None-Match': '"X"'}),
        ({}, {}),
    )
    @unpack
    def test_conditional_headers(self, cached_headers, expected_headers):
        cached = Response(status=200, reason='OK', headers=cached_headers, body=b'cached')
        fresh = response(200, body=b'fresh')
        when(self.transport).send(Request(uri='/a.doc', headers=expected_headers)).thenReturn(fresh)

        self.assertIs(fresh, self.adapter().refresh('/a.doc', cached))


@ddt
class TestExpiry(AdapterTestCase):
    @data(
        ({}, False),
        ({'Expires': FUTURE}, False),
        ({'Expires': PAST}, True),
        ({'Expires': '0'}, True),
        ({'Expires': 'not a date'}, True),
        ({'Expires': ''}, True),
    )
    @unpack
    def test_is_expired(self, headers, expected):
        cached = Response(status=200, reason='OK', headers=headers, body=b'')

        self.assertEqual(expected, self.adapter().is_expired(cached))

    def test_expiring_exactly_now_is_not_yet_expired(self):
        cached = response(200, Expires='Sun, 02 Jul 2017 12:00:00 GMT')

        self.assertFalse(self.adapter().is_expired(cached))


class TestCreate(TestCase):
    def tearDown(self):
        unstub()

    def test_caches_on_disk(self):
        transport = mock(Transport)
        when(transport).send(Request(uri='/a.doc', headers={})).thenReturn(
            response(200, body=b'hello', Expires='Fri, 01 Jan 2100 00:00:00 GMT'))

        with TemporaryDirectory() as directory:
            adapter = create('x.test', Path(directory), transport=transport)
            adapter.retrieve('/a.doc')
            result = create('x.test', Path(directory), transport=transport).retrieve('/a.doc')

            self.assertEqual('hello', result.content)
            self.assertTrue((Path(directory) / 'entries').is_dir())

        verify(transport, times=1).send(...)
