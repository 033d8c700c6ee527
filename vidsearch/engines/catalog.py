"""Built-in engines.

Tier 1 sites are the most reliable and are listed first; lower tiers tend
to change markup or block scrapers more often.
"""

from __future__ import annotations

from vidsearch.engines.base import BaseEngine, Feature
from vidsearch.engines.html import EngineSpec, HTMLEngine

PREVIEW = frozenset({Feature.PREVIEW, Feature.PAGINATION})
BASIC = frozenset({Feature.PAGINATION})

ENGINE_SPECS: tuple[EngineSpec, ...] = (
    # Tier 1
    EngineSpec(
        name="pornhub",
        display_name="PornHub",
        base_url="https://www.pornhub.com",
        search_path="/video/search?search={query}&page={page}",
        item_selector="li.videoBox, li.pcVideoListItem, div.phimage",
        tier=1,
        bangs=("ph",),
        capabilities=PREVIEW,
    ),
    EngineSpec(
        name="xvideos",
        display_name="XVideos",
        base_url="https://www.xvideos.com",
        search_path="/?k={query}&p={page}",
        item_selector="div.thumb-block, div.mozaique div.thumb",
        tier=1,
        bangs=("xv",),
        capabilities=PREVIEW,
        page_offset=-1,
    ),
    EngineSpec(
        name="xnxx",
        display_name="XNXX",
        base_url="https://www.xnxx.com",
        search_path="/search/{query}/{page}",
        item_selector="div.thumb-block",
        tier=1,
        bangs=("xn",),
        capabilities=PREVIEW,
        page_offset=-1,
    ),
    EngineSpec(
        name="redtube",
        display_name="RedTube",
        base_url="https://www.redtube.com",
        search_path="/?search={query}&page={page}",
        item_selector="li.videoblock_list, li.thumbnail-card, li.videoblock-default, li.video-box",
        tier=1,
        bangs=("rt",),
        capabilities=PREVIEW,
    ),
    EngineSpec(
        name="xhamster",
        display_name="xHamster",
        base_url="https://xhamster.com",
        search_path="/search/{query}?page={page}",
        item_selector="div.thumb-list__item, div.video-thumb",
        tier=1,
        bangs=("xh",),
        capabilities=PREVIEW,
    ),
    # Tier 2
    EngineSpec(
        name="eporner",
        display_name="Eporner",
        base_url="https://www.eporner.com",
        search_path="/search/{query}/{page}/",
        item_selector="div.mb, div.video-item",
        tier=2,
        bangs=("ep",),
        capabilities=frozenset({Feature.PREVIEW, Feature.DOWNLOAD, Feature.PAGINATION}),
    ),
    EngineSpec(
        name="youporn",
        display_name="YouPorn",
        base_url="https://www.youporn.com",
        search_path="/search/?query={query}&page={page}",
        item_selector="div.video-box, article.video-box",
        tier=2,
        bangs=("yp",),
        capabilities=PREVIEW,
    ),
    EngineSpec(
        name="pornmd",
        display_name="PornMD",
        base_url="https://www.pornmd.com",
        search_path="/straight/{query}?page={page}",
        item_selector="div.card.sub",
        tier=2,
        bangs=("pmd",),
    ),
    # Tier 3
    EngineSpec(
        name="4tube",
        display_name="4Tube",
        base_url="https://www.4tube.com",
        search_path="/search?q={query}&p={page}",
        item_selector="div.card",
        bangs=("4t",),
    ),
    EngineSpec(
        name="fux",
        display_name="Fux",
        base_url="https://www.fux.com",
        search_path="/search?q={query}&p={page}",
        item_selector="div.card",
    ),
    EngineSpec(
        name="porntube",
        display_name="PornTube",
        base_url="https://www.porntube.com",
        search_path="/search?q={query}&p={page}",
        item_selector="div.video_container",
        bangs=("pt",),
    ),
    EngineSpec(
        name="drtuber",
        display_name="DrTuber",
        base_url="https://www.drtuber.com",
        search_path="/search/videos?search_type=videos&search_id={query}&p={page}",
        item_selector="a.th.ch-video",
        bangs=("dt",),
    ),
    EngineSpec(
        name="txxx",
        display_name="Txxx",
        base_url="https://www.txxx.com",
        search_path="/search/{query}/?page={page}",
        item_selector="div.thumb-item, div.video-item",
        bangs=("tx",),
    ),
    EngineSpec(
        name="youjizz",
        display_name="YouJizz",
        base_url="https://www.youjizz.com",
        search_path="/search/{query}-{page}.html",
        item_selector="div.video-item, li.video-item",
        bangs=("yj",),
    ),
    EngineSpec(
        name="tnaflix",
        display_name="TNAFlix",
        base_url="https://www.tnaflix.com",
        search_path="/search.php?what={query}&page={page}",
        item_selector="div.col-xs-6.col-md-4",
        bangs=("tna",),
    ),
    EngineSpec(
        name="empflix",
        display_name="EMPFlix",
        base_url="https://www.empflix.com",
        search_path="/search.php?what={query}&page={page}",
        item_selector="div.item-video, div.video-item",
        bangs=("emp",),
    ),
    EngineSpec(
        name="nuvid",
        display_name="Nuvid",
        base_url="https://www.nuvid.com",
        search_path="/search/{query}/",
        item_selector="a.th.video-thumb",
        bangs=("nv",),
        capabilities=frozenset(),
    ),
    EngineSpec(
        name="hellporno",
        display_name="HellPorno",
        base_url="https://hellporno.com",
        search_path="/search/?q={query}",
        item_selector="div.video-thumb",
        bangs=("hp",),
        capabilities=frozenset(),
    ),
    EngineSpec(
        name="sunporno",
        display_name="SunPorno",
        base_url="https://www.sunporno.com",
        search_path="/search/videos?q={query}",
        item_selector="a.item.drclass",
        bangs=("sp",),
        capabilities=frozenset(),
    ),
    EngineSpec(
        name="zenporn",
        display_name="ZenPorn",
        base_url="https://zenporn.com",
        search_path="/search/{query}/?page={page}",
        item_selector="article.thumb",
        bangs=("zp",),
    ),
    EngineSpec(
        name="motherless",
        display_name="Motherless",
        base_url="https://motherless.com",
        search_path="/term/videos/{query}?page={page}",
        item_selector="div.thumb-container, div.thumb",
        bangs=("ml",),
    ),
)


def build_default_engines() -> list[BaseEngine]:
    return [HTMLEngine(spec) for spec in ENGINE_SPECS]
