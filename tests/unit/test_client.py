"""
Unit tests untuk cache facade di atas InMemoryTransport.
"""

import pytest
from hybridcache import CacheValue, Memcache
from hybridcache.cache.envelope import FLAG_PICKLED, FLAG_RAW


# -------- get / set --------

def test_get_miss_returns_none(cache):
    """Miss bukan error"""
    assert cache.get('missing') is None


def test_set_and_get(cache):
    """set return CacheValue, get return value dengan flags"""
    stored = cache.set('user', {'name': 'ana', 'roles': ['admin']})
    assert isinstance(stored, CacheValue)
    assert stored.value == {'name': 'ana', 'roles': ['admin']}

    found = cache.get('user')
    assert found.value == {'name': 'ana', 'roles': ['admin']}
    assert found.flags == FLAG_PICKLED
    assert found.cas is None


def test_raw_read_write(cache, transport):
    """write/read memakai raw bytes"""
    cache.write('page', '<html>')
    assert transport.cluster.entries['page'].data == b'<html>'

    found = cache.read('page')
    assert found.value == b'<html>'
    assert found.flags == FLAG_RAW


def test_custom_flags(cache):
    cache.set('k', 'v', flags=42)
    assert cache.get('k').flags == 42


def test_default_ttl_and_expiry(cache, cluster):
    """Default TTL dari config, expiry per call override"""
    cache.set('short', 1, expiry=10)
    cache.set('long', 2)

    cluster.advance(11)
    assert cache.get('short') is None
    assert cache.get('long').value == 2

    cluster.advance(3600)
    assert cache.get('long') is None


def test_integer_keys(cache):
    cache.set(7, 'seven')
    assert cache.get(7).value == 'seven'
    assert cache.get('7').value == 'seven'


# -------- Namespacing --------

def test_namespace_isolation(cache):
    """Value di namespace lain tidak terlihat"""
    cache.namespace = 'ns1'
    cache.set('k', 'v1')

    cache.namespace = 'ns2'
    assert cache.get('k') is None

    cache.set_namespace('ns1')
    assert cache.get('k').value == 'v1'


def test_wire_key_uses_namespace(cache, transport):
    cache.namespace = 'app'
    cache.set('a b', 1)
    assert 'app:a%sb' in transport.cluster.entries


def test_escaped_keys_do_not_collide(cache):
    """'a b' dan 'a%sb' adalah key yang berbeda"""
    cache.set('a b', 'space')
    cache.set('a%sb', 'literal')
    cache.set('a%20b', 'encoded')

    assert cache.get('a b').value == 'space'
    assert cache.get('a%sb').value == 'literal'
    assert cache.get('a%20b').value == 'encoded'


def test_namespaced_restores_after_error(cache):
    """Namespace lama di-restore walaupun block raise"""
    cache.namespace = 'app'

    with pytest.raises(RuntimeError):
        with cache.namespaced(':users'):
            assert cache.namespace == 'app:users'
            raise RuntimeError('boom')

    assert cache.namespace == 'app'


def test_in_namespace(cache):
    """in_namespace menjalankan fn di namespace sementara"""
    cache.in_namespace('tmp', lambda: cache.set('k', 'scoped'))

    assert cache.get('k') is None
    assert cache.in_namespace('tmp', lambda: cache.get('k').value) == 'scoped'
    assert cache.namespace == ''


# -------- add / replace / cas --------

def test_add_does_not_overwrite(cache):
    """Add kedua gagal dan value pertama tetap ada"""
    assert cache.add('k', 'v1').value == 'v1'
    assert cache.add('k', 'v2') is None
    assert cache.get('k').value == 'v1'


def test_replace_missing_key(cache):
    """Replace pada key yang tidak ada tidak menyimpan apapun"""
    assert cache.replace('k', 'v') is None
    assert cache.get('k') is None

    cache.set('k', 'old')
    assert cache.replace('k', 'new').value == 'new'
    assert cache.get('k').value == 'new'


def test_cas_succeeds_once(cache):
    """Token dari get hanya bisa dipakai sekali"""
    cache.set('k', 'v1')
    found = cache.get('k', cas=True)
    assert found.cas is not None

    swapped = cache.cas('k', 'v2', cas=found.cas)
    assert swapped.value == 'v2'
    assert swapped.cas is not None
    assert swapped.cas != found.cas

    assert cache.cas('k', 'v3', cas=found.cas) is None
    assert cache.get('k').value == 'v2'


def test_cas_missing_key(cache):
    assert cache.cas('missing', 'v', cas=b'1') is None


def test_cas_disabled(transport):
    """support_cas=False menolak CAS reads dan writes"""
    cache = Memcache(transport=transport, support_cas=False)
    cache.set('k', 'v')

    with pytest.raises(ValueError):
        cache.get('k', cas=True)
    with pytest.raises(ValueError):
        cache.cas('k', 'v2', cas=b'1')


def test_get_with_expiry_extends_ttl(cache, cluster, transport):
    """get(expiry=...) = gets + cas dengan TTL baru"""
    cache.set('session', {'id': 1}, expiry=10)
    cluster.advance(8)

    touched = cache.get('session', expiry=100)
    assert touched.value == {'id': 1}
    assert transport.calls['gets'] == 1
    assert transport.calls['cas'] == 1

    cluster.advance(50)
    assert cache.get('session').value == {'id': 1}


def test_get_with_expiry_on_missing_key(cache, transport):
    assert cache.get('missing', expiry=100) is None
    assert transport.calls['cas'] == 0


# -------- Multi get --------

def test_multi_get_original_keys(cache):
    """Result di-key dengan original key (str), miss tidak ada di result"""
    cache.namespace = 'ns'
    cache.set(1, 'one')
    cache.set('a b', 'spaced')

    result = cache.get([1, 'a b', 'missing'])

    assert set(result) == {'1', 'a b'}
    assert result['1'].value == 'one'
    assert result['a b'].value == 'spaced'


def test_multi_get_with_cas(cache):
    cache.set('a', 1)
    result = cache.get(['a'], cas=True)
    assert result['a'].cas is not None

    assert cache.cas('a', 2, cas=result['a'].cas).value == 2


def test_multi_get_empty_no_round_trip(cache, transport):
    """List kosong tidak memanggil transport"""
    assert cache.get([]) == {}
    assert transport.calls['get_multi'] == 0


# -------- Failure handling --------

def test_unavailable_server_is_miss(cache, transport):
    """Broken server pada read dianggap miss"""
    cache.set('k', 'v')
    transport.unavailable = True

    assert cache.get('k') is None
    assert cache.get(['k']) == {}
    assert cache.count('k') == 0


def test_other_errors_propagate(cache, transport):
    """Connection/protocol error selain not found/not stored di-propagate"""
    transport.error = ConnectionRefusedError('refused')

    with pytest.raises(ConnectionRefusedError):
        cache.set('k', 'v')
    with pytest.raises(ConnectionRefusedError):
        cache.get('k')
    with pytest.raises(ConnectionRefusedError):
        cache.delete('k')


# -------- append / prepend / counters --------

def test_append_prepend(cache):
    """Byte concatenation, tidak pernah create key"""
    assert cache.append('log', 'x') is False
    assert cache.prepend('log', 'x') is False
    assert cache.get('log') is None

    cache.write('log', 'b')
    assert cache.append('log', 'c') is True
    assert cache.prepend('log', b'a') is True
    assert cache.read('log').value == b'abc'


def test_increment_decrement(cache):
    """Counter tidak auto-create dan decrement floor di 0"""
    assert cache.increment('hits') is None
    assert cache.decr('hits') is None

    cache.write('hits', 5)
    assert cache.increment('hits') == 6
    assert cache.incr('hits', 10) == 16
    assert cache.decrement('hits', 4) == 12
    assert cache.decrement('hits', 100) == 0


def test_count(cache):
    """count membaca raw value sebagai int"""
    assert cache.count('visits') == 0

    cache.write('visits', 3)
    cache.incr('visits')
    assert cache.count('visits') == 4

    cache.write('garbage', 'abc')
    assert cache.count('garbage') == 0


def test_delete(cache):
    cache.set('k', 'v')
    assert cache.delete('k') is True
    assert cache.delete('k') is False
    assert cache.get('k') is None


def test_flush_all_is_cluster_wide(cache, cluster):
    """flush_all menghapus semua namespace, bukan hanya namespace sekarang"""
    cache.set('outside', 1)
    with cache.namespaced('inside'):
        cache.set('k', 2)
        cache.clear()

    assert cluster.entries == {}
    assert cluster.flushes == 1


# -------- Instance management --------

def test_indexer(cache):
    """cache[key] / cache[key] = value"""
    assert cache['k'] is None
    cache['k'] = [1, 2]
    assert cache['k'] == [1, 2]


def test_clone_has_independent_namespace(cache):
    cache.namespace = 'app'
    cache.set('k', 'v')

    klone = cache.clone()
    assert isinstance(klone, Memcache)
    assert klone.namespace == 'app'
    assert klone.transport is not cache.transport
    assert klone.get('k').value == 'v'

    klone.namespace = 'other'
    assert cache.namespace == 'app'
    assert klone.get('k') is None


def test_repr(cache):
    cache.namespace = 'app'
    assert repr(cache) == "<Memcache: 1 servers, ns: 'app'>"


if __name__ == "__main__":
    pytest.main([__file__, '-v'])
