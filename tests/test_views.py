from kura import views


class TestCacheView:
    def test_is_restartable(self):
        entries = [1, 2]
        view = views.CacheView(lambda: iter(entries))

        assert list(view) == [1, 2]
        assert list(view) == [1, 2]

    def test_reflects_current_state(self):
        entries = [1]
        view = views.CacheView(lambda: iter(entries))

        entries.append(2)

        assert view.to_list() == [1, 2]
        assert view.len() == 2
        assert 2 in view

    def test_bool(self):
        entries: list = []
        view = views.CacheView(lambda: iter(entries))

        assert not view

        entries.append(None)

        assert view
