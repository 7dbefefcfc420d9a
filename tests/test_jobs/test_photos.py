"""Tests for the job photo log."""

from datetime import datetime

import pytest

from job_desk.jobs.photos import add_photo, list_photos, remove_photo


class TestPhotos:
    def test_add(self, repo, identity, job):
        photo = add_photo(repo, identity, job, " https://x.test/a.jpg ",
                          "Before")
        assert photo.id is not None
        stored = list_photos(repo, job)
        assert len(stored) == 1
        assert stored[0].photo_url == "https://x.test/a.jpg"
        assert stored[0].caption == "Before"
        assert stored[0].uploaded_by == identity.user_id
        assert stored[0].company_id == identity.company_id

    def test_empty_caption_stored_as_none(self, repo, identity, job):
        add_photo(repo, identity, job, "a.jpg", "")
        assert list_photos(repo, job)[0].caption is None

    @pytest.mark.parametrize("url", ["", "   ", None])
    def test_url_required(self, repo, identity, job, url):
        with pytest.raises(ValueError):
            add_photo(repo, identity, job, url)
        assert list_photos(repo, job) == []

    def test_newest_first(self, repo, identity, job):
        add_photo(repo, identity, job, "old.jpg",
                  now=datetime(2026, 10, 15, 9, 0))
        add_photo(repo, identity, job, "new.jpg",
                  now=datetime(2026, 10, 16, 9, 0))
        assert [p.photo_url for p in list_photos(repo, job)] == \
            ["new.jpg", "old.jpg"]

    def test_remove(self, repo, identity, job):
        photo = add_photo(repo, identity, job, "a.jpg")
        assert remove_photo(repo, identity, photo.id)
        assert list_photos(repo, job) == []
        assert not remove_photo(repo, identity, photo.id)

    def test_other_company_cannot_remove(self, repo, identity, rival_identity,
                                         job):
        photo = add_photo(repo, identity, job, "a.jpg")
        assert not remove_photo(repo, rival_identity, photo.id)
        assert [p.id for p in list_photos(repo, job)] == [photo.id]
