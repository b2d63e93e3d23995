"""
Manga Sources - search, chapter lists and page images from individual sites
Supported sites: MangaDex (JSON API), Comick (JSON API + embedded page data), MangaPark (HTML)

Every public method returns a plain list and never raises: network errors,
unknown payload shapes and broken records are logged and come back as an
empty (or shorter) list.
"""

import re
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, Type
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from chapter_ranker import rank_chapters, sort_by_title
from identifier_codec import IdentifierCodec
from manga_config import Settings
from manga_errors import PayloadError, SourceError, UnknownSourceError
from manga_models import CatalogEntry, ChapterEntry
from manga_transport import Transport
from pagination import paginate
from payload_shapes import Shape, extract_embedded_json, find_records, locate, parse_json
from record_extractor import (
    ANY_KEY, OBJECT, CatalogFields, ChapterFields, Field,
    extract_catalog_entry, extract_chapter_entry, resolve,
)

logger = logging.getLogger(__name__)


class ContentProvider(Protocol):
    name: str

    def search(self, query: str) -> List[CatalogEntry]:
        ...

    def latest(self) -> List[CatalogEntry]:
        ...

    def list_chapters(self, entry: CatalogEntry) -> List[ChapterEntry]:
        ...

    def list_page_images(self, chapter: ChapterEntry) -> List[str]:
        ...


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or '', 'html.parser')


def _reported_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)


class MangaSource:
    """Base class for sources. Subclasses implement the underscored methods,
    which are free to raise; the public wrappers turn any failure into []."""

    name = ''
    site_url = ''

    def __init__(self, transport: Optional[Transport] = None, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.transport = transport or Transport.from_settings(self.settings)

    def search(self, query: str) -> List[CatalogEntry]:
        """Search titles. Blank queries are never sent to the site."""
        query = (query or '').strip()
        if not query:
            logger.warning(f"[{self.name}] Ignoring empty search query")
            return []
        return self._guarded('search', self._search, query)

    def latest(self) -> List[CatalogEntry]:
        """Popular / recently updated titles from the site's front listing"""
        return self._guarded('latest', self._latest)

    def list_chapters(self, entry: CatalogEntry) -> List[ChapterEntry]:
        return self._guarded('chapters', self._list_chapters, entry)

    def list_page_images(self, chapter: ChapterEntry) -> List[str]:
        """Page image URLs in reading order"""
        return self._guarded('pages', self._list_page_images, chapter)

    def _guarded(self, operation: str, func: Callable, *args) -> list:
        try:
            results = func(*args)
        except Exception as e:
            logger.error(f"[{self.name}] {operation} failed: {e}")
            logger.debug(f"[{self.name}] {operation} traceback", exc_info=True)
            return []
        logger.info(f"[{self.name}] {operation}: {len(results)} results")
        return results

    def _search(self, query: str) -> List[CatalogEntry]:
        raise NotImplementedError

    def _latest(self) -> List[CatalogEntry]:
        raise NotImplementedError

    def _list_chapters(self, entry: CatalogEntry) -> List[ChapterEntry]:
        raise NotImplementedError

    def _list_page_images(self, chapter: ChapterEntry) -> List[str]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class MangaDexSource(MangaSource):
    """MangaDex through its public JSON API"""

    name = 'MangaDex'
    site_url = 'https://mangadex.org'
    API_BASE = 'https://api.mangadex.org'
    UPLOAD_BASE = 'https://uploads.mangadex.org'
    CONTENT_RATINGS = ['safe', 'suggestive']
    LIST_LIMIT = 20
    CHAPTER_ENDPOINT_LIMIT = 100  # /chapter rejects anything larger

    MANGA_FIELDS = CatalogFields(
        title=(
            Field('attributes.title', OBJECT, ('en', ANY_KEY)),
            Field('attributes.altTitles', OBJECT, ('en',)),
            Field('title'),
        ),
        identifier=(Field('id'),),
        description=(Field('attributes.description', OBJECT, ('en', ANY_KEY)),),
    )
    CHAPTER_FIELDS = ChapterFields(
        identifier=(Field('id'),),
        subtitle=(Field('attributes.title'),),
        volume=(Field('attributes.volume'),),
        chapter=(Field('attributes.chapter'),),
        language=(Field('attributes.translatedLanguage'),),
    )

    def __init__(self, transport: Optional[Transport] = None, settings: Optional[Settings] = None):
        super().__init__(transport, settings)
        self.title_codec = IdentifierCodec(self.site_url, 'title')
        self.chapter_codec = IdentifierCodec(self.site_url, 'chapter')

    def _list_params(self, **extra) -> Dict[str, Any]:
        params = {
            'limit': self.LIST_LIMIT,
            'offset': 0,
            'includes[]': 'cover_art',
            'availableTranslatedLanguage[]': self.settings.language,
            'contentRating[]': self.CONTENT_RATINGS,
        }
        params.update(extra)
        return params

    def _search(self, query: str) -> List[CatalogEntry]:
        text = self.transport.get_text(f"{self.API_BASE}/manga", params=self._list_params(title=query))
        return self._parse_manga_list(text)

    def _latest(self) -> List[CatalogEntry]:
        params = self._list_params(**{'order[followedCount]': 'desc'})
        text = self.transport.get_text(f"{self.API_BASE}/manga", params=params)
        return self._parse_manga_list(text)

    def _parse_manga_list(self, text: str) -> List[CatalogEntry]:
        payload = parse_json(text)
        if payload is None:
            logger.warning("[MangaDex] Manga list response is not JSON")
            return []

        entries = []
        for item in find_records(payload):
            entry = extract_catalog_entry(item, self.MANGA_FIELDS, self.name,
                                          self.title_codec.encode, self._cover_url)
            if entry:
                entries.append(entry)
        return entries

    def _cover_url(self, item: Dict[str, Any], manga_id: str) -> str:
        relationships = item.get('relationships')
        if not isinstance(relationships, list):
            return ''
        for rel in relationships:
            if isinstance(rel, dict) and rel.get('type') == 'cover_art':
                file_name = resolve(rel, [Field('attributes.fileName')])
                if file_name:
                    return f"{self.UPLOAD_BASE}/covers/{manga_id}/{file_name}"
        return ''

    def _scanlator(self, item: Dict[str, Any]) -> str:
        relationships = item.get('relationships')
        if not isinstance(relationships, list):
            return 'No Group'

        groups = []
        uploader = ''
        for rel in relationships:
            if not isinstance(rel, dict):
                continue
            if rel.get('type') == 'scanlation_group':
                group = resolve(rel, [Field('attributes.name')])
                if group:
                    groups.append(group)
            elif rel.get('type') == 'user' and not uploader:
                uploader = resolve(rel, [Field('attributes.username')]) or ''

        if groups:
            return ', '.join(groups)
        if uploader:
            return f"Uploaded by {uploader}"
        return 'No Group'

    def _list_chapters(self, entry: CatalogEntry) -> List[ChapterEntry]:
        manga_id = self.title_codec.decode(entry.url)
        if not manga_id:
            logger.warning(f"[MangaDex] Could not extract manga ID from {entry.url!r}")
            return []

        logger.info(f"[MangaDex] Getting chapters for manga ID: {manga_id}")
        feed_url = f"{self.API_BASE}/manga/{manga_id}/feed"
        feed_params = {
            'translatedLanguage[]': self.settings.language,
            'order[volume]': 'desc',
            'order[chapter]': 'desc',
            'includes[]': ['scanlation_group', 'user'],
            'contentRating[]': self.CONTENT_RATINGS,
            'includeFuturePublishAt': 0,
            'includeEmptyPages': 0,
        }
        chapters = paginate(
            lambda offset, limit: self._fetch_chapter_page(feed_url, feed_params, offset, limit),
            self.settings.feed_limit
        )

        if not chapters:
            logger.info(f"[MangaDex] Feed empty for {manga_id}, trying chapter listing")
            list_params = dict(feed_params, manga=manga_id)
            chapters = paginate(
                lambda offset, limit: self._fetch_chapter_page(
                    f"{self.API_BASE}/chapter", list_params, offset, limit),
                min(self.settings.feed_limit, self.CHAPTER_ENDPOINT_LIMIT)
            )

        return rank_chapters(chapters)

    def _fetch_chapter_page(self, url: str, params: Dict[str, Any],
                            offset: int, limit: int) -> Tuple[List[ChapterEntry], int, int]:
        text = self.transport.get_text(url, params=dict(params, offset=offset, limit=limit))
        payload = parse_json(text)
        if not isinstance(payload, dict):
            raise PayloadError(f"Chapter page at offset {offset} is not a JSON object")

        chapters = []
        for item in locate(payload, [Shape(('data',), list)]) or []:
            chapter = extract_chapter_entry(item, self.CHAPTER_FIELDS, self.chapter_codec.encode,
                                            default_language=self.settings.language,
                                            scanlator_of=self._scanlator)
            if chapter:
                chapters.append(chapter)
        return chapters, _reported_int(payload.get('limit')), _reported_int(payload.get('total'))

    def _list_page_images(self, chapter: ChapterEntry) -> List[str]:
        chapter_id = self.chapter_codec.decode(chapter.url)
        if not chapter_id:
            logger.warning(f"[MangaDex] Could not extract chapter ID from {chapter.url!r}")
            return []

        payload = parse_json(self.transport.get_text(f"{self.API_BASE}/at-home/server/{chapter_id}"))
        base_url = resolve(payload, [Field('baseUrl')])
        chapter_hash = resolve(payload, [Field('chapter.hash')])
        if not base_url or not chapter_hash:
            logger.warning(f"[MangaDex] No baseUrl/hash in at-home response for {chapter_id}")
            return []

        base_url = base_url.rstrip('/')
        for key, folder in (('data', 'data'), ('dataSaver', 'data-saver')):
            files = locate(payload, [Shape(('chapter', key), list)]) or []
            pages = [f"{base_url}/{folder}/{chapter_hash}/{name}"
                     for name in files if isinstance(name, str) and name]
            if pages:
                return pages
            logger.debug(f"[MangaDex] No '{key}' pages for {chapter_id}")
        return []


class ComickSource(MangaSource):
    """Comick: JSON search API plus data embedded in its HTML pages"""

    name = 'Comick'
    site_url = 'https://comick.io'
    API_BASE = 'https://api.comick.io'
    IMAGE_BASE = 'https://meo.comick.pictures'
    DATA_MARKER = 'window.__DATA__'
    SCANS_MARKER = 'window.__scans__'

    COMIC_FIELDS = CatalogFields(
        title=(Field('title'), Field('md_titles', OBJECT, ('title',))),
        identifier=(Field('slug'), Field('hid')),
        cover=(Field('cover_url'),),
        description=(Field('desc'),),
    )
    CHAPTER_FIELDS = ChapterFields(
        identifier=(Field('hid'),),
        subtitle=(Field('title'),),
        volume=(Field('vol'),),
        chapter=(Field('chap'),),
        language=(Field('lang'),),
    )
    CHAPTER_SHAPES = (
        Shape(('chapter',)),
        Shape(('chapters',)),
        Shape(('comic', 'chapters')),
    )
    IMAGE_SHAPES = (
        Shape(()),
        Shape(('images',)),
        Shape(('chapter', 'md_images')),
        Shape(('chapter', 'images')),
    )
    IMAGE_FIELDS = (Field('url'), Field('b2key'))

    def __init__(self, transport: Optional[Transport] = None, settings: Optional[Settings] = None):
        super().__init__(transport, settings)
        self.comic_codec = IdentifierCodec(self.site_url, 'comic')
        self.chapter_codec = IdentifierCodec(self.site_url, 'chapter')

    def _search(self, query: str) -> List[CatalogEntry]:
        entries: List[CatalogEntry] = []
        try:
            text = self.transport.get_text(f"{self.API_BASE}/v1.0/search",
                                           params={'q': query, 'limit': 20, 'page': 1})
            entries = self._parse_comic_list(text)
        except SourceError as e:
            logger.warning(f"[Comick] Search API error: {e}")

        if entries:
            return entries

        logger.info(f"[Comick] Search API gave nothing for {query!r}, scraping search page")
        html = self.transport.get_text(f"{self.site_url}/search", params={'q': query})
        return self._parse_comic_links(html)

    def _latest(self) -> List[CatalogEntry]:
        return self._parse_comic_links(self.transport.get_text(f"{self.site_url}/home2"))

    def _parse_comic_list(self, text: str) -> List[CatalogEntry]:
        entries = []
        for item in find_records(parse_json(text), allow_single=False):
            entry = extract_catalog_entry(item, self.COMIC_FIELDS, self.name,
                                          self.comic_codec.encode, self._cover_url)
            if entry:
                entries.append(entry)
        return entries

    def _cover_url(self, item: Dict[str, Any], slug: str) -> str:
        key = resolve(item, [Field('md_covers', OBJECT, ('b2key',))])
        return f"{self.IMAGE_BASE}/{key}" if key else ''

    def _parse_comic_links(self, html: str) -> List[CatalogEntry]:
        """Fallback: every anchor pointing at /comic/<slug>"""
        entries = []
        seen = set()
        for link in _soup(html).select('a[href*="/comic/"]'):
            slug = self.comic_codec.decode(urljoin(self.site_url, link.get('href', '')))
            if not slug or slug in seen:
                continue

            img = link.find('img')
            title = (link.get('title') or link.get_text(' ', strip=True)
                     or (img.get('alt', '') if img else '')).strip()
            if not title:
                continue

            seen.add(slug)
            entries.append(CatalogEntry(
                title=title,
                url=self.comic_codec.encode(slug),
                cover_url=img.get('src', '') if img else '',
                source=self.name
            ))
        return entries

    def _list_chapters(self, entry: CatalogEntry) -> List[ChapterEntry]:
        slug = self.comic_codec.decode(entry.url)
        if not slug:
            logger.warning(f"[Comick] Could not extract comic slug from {entry.url!r}")
            return []

        page_url = self.comic_codec.encode(slug)
        html = self.transport.get_text(page_url, referer=self.site_url)

        chapters = self._chapters_from_data(html)
        if not chapters:
            logger.info(f"[Comick] No embedded chapter data for {slug}, matching chapter links")
            chapters = self._chapters_from_links(html, page_url)
        return rank_chapters(chapters)

    def _chapters_from_data(self, html: str) -> List[ChapterEntry]:
        data = extract_embedded_json(html, self.DATA_MARKER)
        if data is None:
            return []

        chapters = []
        for item in locate(data, self.CHAPTER_SHAPES) or []:
            chapter = extract_chapter_entry(item, self.CHAPTER_FIELDS, self.chapter_codec.encode)
            if chapter:
                chapters.append(chapter)
        return chapters

    def _chapters_from_links(self, html: str, page_url: str) -> List[ChapterEntry]:
        chapters = []
        seen = set()
        for link in _soup(html).select('a[href*="/chapter/"]'):
            hid = self.chapter_codec.decode(urljoin(page_url, link.get('href', '')))
            title = link.get_text(' ', strip=True)
            if not hid or not title or hid in seen:
                continue
            seen.add(hid)
            chapters.append(ChapterEntry(title=title, url=self.chapter_codec.encode(hid)))
        return chapters

    def _page_endpoints(self, hid: str) -> List[Tuple[str, Callable[[str], List[str]]]]:
        return [
            (f"{self.API_BASE}/chapter/{hid}/get_images", self._images_from_json),
            (f"{self.API_BASE}/chapter/{hid}", self._images_from_json),
            (self.chapter_codec.encode(hid), self._images_from_html),
        ]

    def _list_page_images(self, chapter: ChapterEntry) -> List[str]:
        hid = self.chapter_codec.decode(chapter.url)
        if not hid:
            logger.warning(f"[Comick] Could not extract chapter hid from {chapter.url!r}")
            return []

        # A 200 with no images counts as a miss; keep going down the list
        for url, parse in self._page_endpoints(hid):
            try:
                pages = parse(self.transport.get_text(url, referer=self.site_url))
            except SourceError as e:
                logger.warning(f"[Comick] Page endpoint failed: {e}")
                continue
            if pages:
                logger.debug(f"[Comick] {len(pages)} pages from {url}")
                return pages
            logger.info(f"[Comick] No images at {url}, trying next endpoint")
        return []

    def _images_from_json(self, text: str) -> List[str]:
        return self._image_urls(locate(parse_json(text), self.IMAGE_SHAPES))

    def _images_from_html(self, html: str) -> List[str]:
        return self._image_urls(locate(extract_embedded_json(html, self.SCANS_MARKER), self.IMAGE_SHAPES))

    def _image_urls(self, records: Optional[Sequence[Any]]) -> List[str]:
        urls = []
        for item in records or []:
            key = item.strip() if isinstance(item, str) else resolve(item, self.IMAGE_FIELDS)
            if not key:
                continue
            urls.append(key if key.startswith('http') else f"{self.IMAGE_BASE}/{key.lstrip('/')}")
        return urls


class MangaParkSource(MangaSource):
    """MangaPark scraped from its HTML pages"""

    name = 'MangaPark'
    site_url = 'https://mangapark.io'
    LANGUAGE = 'en'

    CARD_SELECTORS = (
        'div[class*="item"] a[href*="/title/"]',
        'a.fw-bold[href*="/title/"], h3 a[href*="/title/"]',
    )
    IMAGE_SELECTOR = 'img[src*="/mangapark"], img[src*="mpcdn"], img[data-src*="mpcdn"]'
    SCRIPT_IMAGE_URL = re.compile(
        r'https?:\\?/\\?/[^\s"\'<>]+?\.(?:jpe?g|png|webp|gif)(?:\?[^\s"\'<>]*)?',
        re.IGNORECASE
    )
    TITLE_PATH = re.compile(r'/title/[^/]+/?$')

    def __init__(self, transport: Optional[Transport] = None, settings: Optional[Settings] = None):
        super().__init__(transport, settings)
        self.codec = IdentifierCodec(self.site_url, 'title')

    def _search(self, query: str) -> List[CatalogEntry]:
        html = self.transport.get_text(f"{self.site_url}/search", params={'word': query})
        return self._parse_title_cards(html)

    def _latest(self) -> List[CatalogEntry]:
        return self._parse_title_cards(self.transport.get_text(self.site_url))

    def _parse_title_cards(self, html: str) -> List[CatalogEntry]:
        soup = _soup(html)
        for selector in self.CARD_SELECTORS:
            entries = self._cards(soup, selector)
            if entries:
                return entries
            logger.debug(f"[MangaPark] No title cards for {selector!r}")
        return []

    def _cards(self, soup: BeautifulSoup, selector: str) -> List[CatalogEntry]:
        # One card can hold several anchors (cover, name); merge them per title
        cards: Dict[str, Dict[str, str]] = {}
        for link in soup.select(selector):
            url = urljoin(self.site_url, link.get('href', ''))
            if not self.TITLE_PATH.search(urlparse(url).path):
                continue
            title_id = self.codec.decode(url)
            if not title_id:
                continue

            card = cards.setdefault(title_id, {'title': '', 'cover': ''})
            img = link.find('img')
            if not card['title']:
                card['title'] = (link.get_text(' ', strip=True) or link.get('title', '')
                                 or (img.get('alt', '') if img else '')).strip()
            if not card['cover'] and img:
                cover = img.get('src') or img.get('data-src') or ''
                card['cover'] = urljoin(self.site_url, cover) if cover else ''

        return [
            CatalogEntry(title=card['title'], url=self.codec.encode(title_id),
                         cover_url=card['cover'], source=self.name)
            for title_id, card in cards.items() if card['title']
        ]

    def _list_chapters(self, entry: CatalogEntry) -> List[ChapterEntry]:
        title_id = self.codec.decode(entry.url)
        if not title_id:
            logger.warning(f"[MangaPark] Could not extract title ID from {entry.url!r}")
            return []

        page_url = self.codec.encode(title_id)
        soup = _soup(self.transport.get_text(page_url, referer=self.site_url))

        chapters = self._chapter_links(soup, page_url, lambda path: '/chapter/' in path)
        if not chapters:
            logger.info(f"[MangaPark] No /chapter/ links for {title_id}, trying nested title links")
            chapters = self._chapter_links(soup, page_url, self._is_nested_chapter_path)
        return sort_by_title(chapters)

    @staticmethod
    def _is_nested_chapter_path(path: str) -> bool:
        # /title/<id>/<chapter-id>
        segments = [s for s in path.split('/') if s]
        return 'title' in segments and len(segments) - segments.index('title') >= 3

    def _chapter_links(self, soup: BeautifulSoup, page_url: str,
                       matches: Callable[[str], bool]) -> List[ChapterEntry]:
        chapters = []
        seen = set()
        for link in soup.find_all('a', href=True):
            url = urljoin(page_url, link['href'])
            if url in seen or not matches(urlparse(url).path):
                continue
            title = link.get_text(' ', strip=True)
            if not title:
                continue
            seen.add(url)
            chapters.append(ChapterEntry(title=title, url=url, language=self.LANGUAGE))
        return chapters

    def _list_page_images(self, chapter: ChapterEntry) -> List[str]:
        if not chapter.url:
            return []
        soup = _soup(self.transport.get_text(chapter.url, referer=self.site_url))

        pages: List[str] = []
        for img in soup.select(self.IMAGE_SELECTOR):
            src = img.get('src', '')
            if not src or src.startswith('data:'):
                src = img.get('data-src', '')
            if src:
                pages.append(urljoin(chapter.url, src))
        if pages:
            return pages

        # The same URL often shows up several times across scripts
        logger.info(f"[MangaPark] No image nodes in {chapter.url}, scanning scripts")
        seen = set()
        for script in soup.find_all('script'):
            for match in self.SCRIPT_IMAGE_URL.finditer(script.string or ''):
                url = match.group(0).replace('\\/', '/')
                if url not in seen:
                    seen.add(url)
                    pages.append(url)
        return pages


SOURCES: Dict[str, Type[MangaSource]] = {
    cls.name: cls for cls in (MangaDexSource, ComickSource, MangaParkSource)
}


def build_registry(settings: Optional[Settings] = None,
                   transport: Optional[Transport] = None) -> Dict[str, MangaSource]:
    """One instance of every source, sharing a single transport"""
    settings = settings or Settings()
    transport = transport or Transport.from_settings(settings)
    return {name: cls(transport, settings) for name, cls in SOURCES.items()}


def get_source(registry: Dict[str, MangaSource], name: str) -> MangaSource:
    """Look up a source by name, ignoring case"""
    wanted = (name or '').strip().lower()
    for source_name, source in registry.items():
        if source_name.lower() == wanted:
            return source
    raise UnknownSourceError(f"Unknown source '{name}'. Available: {', '.join(registry)}")
