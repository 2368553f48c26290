"""
Tests for copying upstream headers onto the outgoing response, including
Set-Cookie domain rewriting.
"""
import unittest
import sys
import os

# Add parent directory to path to import relaygate modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from relaygate.features.proxy.messages import HeadersOutgoingResponse, ProxyRequest, UpstreamResponse
from relaygate.features.proxy.options import ProxyOptions
from relaygate.features.proxy.passes import write_headers
from relaygate.features.proxy.services.cookies import rewrite_cookie_domain


class RecordingResponse:
    """Outgoing response that remembers the last value set per header name."""

    def __init__(self):
        self.headers = {}
        self.status_code = None

    def set_header(self, name, value):
        self.headers[name] = value

    def write_head(self, status_code):
        self.status_code = status_code


class TestWriteHeaders(unittest.TestCase):

    def setUp(self):
        self.request = ProxyRequest()
        self.upstream = UpstreamResponse(200, {
            'hey': 'hello',
            'how': 'are you?',
            'set-cookie': 'hello; domain=my.domain; path=/',
        })
        self.outgoing = RecordingResponse()

    def write(self, **option_values):
        write_headers(self.request, self.outgoing, self.upstream, ProxyOptions.create(**option_values))

    def test_writes_headers(self):
        self.write()
        self.assertEqual(self.outgoing.headers['hey'], 'hello')
        self.assertEqual(self.outgoing.headers['how'], 'are you?')
        self.assertEqual(self.outgoing.headers['set-cookie'], 'hello; domain=my.domain; path=/')

    def test_rewrites_domain(self):
        self.write(cookie_domain_rewrite='my.new.domain')
        self.assertEqual(self.outgoing.headers['set-cookie'], 'hello; domain=my.new.domain; path=/')

    def test_removes_domain(self):
        self.write(cookie_domain_rewrite='')
        self.assertEqual(self.outgoing.headers['set-cookie'], 'hello; path=/')

    def test_rewrites_with_per_domain_mapping(self):
        self.upstream.headers['set-cookie'] = [
            'hello-on-my.domain; domain=my.domain; path=/',
            'hello-on-my.old.domain; domain=my.old.domain; path=/',
            'hello-on-my.special.domain; domain=my.special.domain; path=/',
        ]
        self.write(cookie_domain_rewrite={
            '*': '',
            'my.old.domain': 'my.new.domain',
            'my.special.domain': 'my.special.domain',
        })
        self.assertEqual(self.outgoing.headers['set-cookie'], [
            'hello-on-my.domain; path=/',
            'hello-on-my.old.domain; domain=my.new.domain; path=/',
            'hello-on-my.special.domain; domain=my.special.domain; path=/',
        ])

    def test_matches_set_cookie_case_insensitively(self):
        self.upstream = UpstreamResponse(200, {'Set-Cookie': 'a=1; Path=/; domain=old.example'})
        self.write(cookie_domain_rewrite='new.example')
        self.assertEqual(self.outgoing.headers['Set-Cookie'], 'a=1; Path=/; domain=new.example')

    def test_trims_header_names(self):
        self.upstream = UpstreamResponse(200, {' X-Padded ': 'yes'})
        self.write()
        self.assertEqual(self.outgoing.headers, {'X-Padded': 'yes'})

    def test_skips_missing_values(self):
        self.upstream.headers['x-missing'] = None
        self.write()
        self.assertNotIn('x-missing', self.outgoing.headers)

    def test_running_twice_gives_same_headers(self):
        outgoing = HeadersOutgoingResponse()
        self.upstream.headers['set-cookie'] = ['a=1', 'b=2']
        options = ProxyOptions.create()
        write_headers(self.request, outgoing, self.upstream, options)
        first = list(outgoing.headers.items())
        write_headers(self.request, outgoing, self.upstream, options)
        self.assertEqual(list(outgoing.headers.items()), first)
        self.assertEqual(outgoing.headers.getlist('Set-Cookie'), ['a=1', 'b=2'])

    def test_does_not_mutate_upstream_cookies(self):
        self.write(cookie_domain_rewrite='my.new.domain')
        self.assertEqual(self.upstream.headers['set-cookie'], 'hello; domain=my.domain; path=/')


class TestRewriteCookieDomain(unittest.TestCase):

    def test_unmatched_domain_is_untouched(self):
        value = 'a=1;domain=keep.me ;path=/'
        self.assertEqual(rewrite_cookie_domain(value, {'other.domain': 'x'}), value)

    def test_uppercase_domain_attribute_is_not_matched(self):
        value = 'a=1; Domain=my.domain; path=/'
        self.assertEqual(rewrite_cookie_domain(value, {'*': 'new.domain'}), value)

    def test_exact_match_beats_wildcard(self):
        self.assertEqual(
            rewrite_cookie_domain('a=1; domain=x.com', {'*': 'star.com', 'x.com': 'exact.com'}),
            'a=1; domain=exact.com',
        )

    def test_keeps_whitespace_as_written(self):
        self.assertEqual(rewrite_cookie_domain('a=1;   domain=x.com', {'*': 'y.com'}), 'a=1;   domain=y.com')

    def test_domain_at_end_is_removed(self):
        self.assertEqual(rewrite_cookie_domain('a=1; path=/; domain=x.com', {'*': ''}), 'a=1; path=/')

    def test_only_first_domain_attribute_is_rewritten(self):
        self.assertEqual(
            rewrite_cookie_domain('a=1; domain=x.com; domain=x.com', {'*': 'y.com'}),
            'a=1; domain=y.com; domain=x.com',
        )

    def test_cookie_without_domain(self):
        self.assertEqual(rewrite_cookie_domain('a=1; path=/', {'*': 'y.com'}), 'a=1; path=/')

    def test_list_order_is_preserved(self):
        cookies = ['a=1; domain=a.com', 'b=2', 'c=3; domain=c.com']
        self.assertEqual(
            rewrite_cookie_domain(cookies, {'c.com': 'z.com'}),
            ['a=1; domain=a.com', 'b=2', 'c=3; domain=z.com'],
        )


if __name__ == '__main__':
    unittest.main()
