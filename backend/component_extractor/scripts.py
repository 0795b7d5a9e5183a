"""
In-page JavaScript evaluated through PageSession.evaluate().

Each snippet only gathers raw facts from the live DOM. All decisions
(scoring, filtering, pattern rules, HTML emission) are made in Python.
"""

# Facts about one candidate node. arg = exclusion selector or null.
ELEMENT_INFO = '''(el, exclude) => {
    const tag = el.tagName.toLowerCase();
    const cs = getComputedStyle(el);

    let excluded = false;
    if (exclude) {
        try { excluded = el.matches(exclude) || !!el.closest(exclude); } catch (e) {}
    }

    const text = (el.innerText || el.textContent || '').replace(/\\s+/g, ' ').trim();

    // Structural path, stable for the lifetime of the page load
    const parts = [];
    let node = el;
    while (node && node.nodeType === 1 && node !== document.documentElement) {
        let i = 1;
        let sib = node;
        while ((sib = sib.previousElementSibling)) i++;
        parts.unshift(node.tagName.toLowerCase() + ':nth-child(' + i + ')');
        node = node.parentElement;
    }

    return {
        tag: tag,
        classes: (typeof el.className === 'string')
            ? el.className.split(/\\s+/).filter(Boolean) : [],
        position: cs.position,
        textLength: text.length,
        text: text.slice(0, 200),
        hasHeading: /^h[1-3]$/.test(tag) || !!el.querySelector('h1, h2, h3'),
        hasImage: tag === 'img' || !!el.querySelector('img'),
        excluded: excluded,
        path: parts.join(' > '),
    };
}'''

# Computed values for a list of CSS properties. arg = property names.
CAPTURE_STYLES = '''(el, props) => {
    const out = {};
    let cs;
    try { cs = getComputedStyle(el); } catch (e) { return out; }
    for (const p of props) {
        try {
            const v = cs.getPropertyValue(p);
            if (v) out[p] = v;
        } catch (e) {}
    }
    return out;
}'''

# Foreground <img> data and every CSS background-image url in the subtree.
COLLECT_IMAGES = '''(el) => {
    const tag = el.tagName.toLowerCase();
    const imgs = tag === 'img' ? [el] : [...el.querySelectorAll('img')];
    const foreground = imgs.map(img => ({
        src: img.currentSrc || img.getAttribute('src') || '',
        alt: img.alt || '',
        width: img.naturalWidth || 0,
        height: img.naturalHeight || 0,
    }));

    const backgrounds = [];
    const nodes = [el, ...el.querySelectorAll('*')].slice(0, 2000);
    for (const node of nodes) {
        let value;
        try { value = getComputedStyle(node).backgroundImage; } catch (e) { continue; }
        if (value && value !== 'none' && value.includes('url(')) {
            const r = node.getBoundingClientRect();
            backgrounds.push({
                value: value,
                width: Math.round(r.width),
                height: Math.round(r.height),
            });
        }
    }
    return { foreground: foreground, backgrounds: backgrounds };
}'''

# Style-annotated copy of the subtree. arg = {props, maxNodes}.
# Per-node failures come back as {error} leaves instead of aborting the walk.
SNAPSHOT_TREE = '''(root, opts) => {
    let budget = opts.maxNodes;
    const RAW = new Set(['script', 'style', 'noscript', 'template', 'svg']);

    function walk(node) {
        if (node.nodeType === Node.TEXT_NODE) return { text: node.nodeValue };
        if (node.nodeType === Node.COMMENT_NODE) return { comment: node.nodeValue };
        if (node.nodeType !== Node.ELEMENT_NODE) return null;
        if (budget-- <= 0) return null;
        try {
            const tag = node.tagName.toLowerCase();
            const attrs = {};
            for (const a of node.attributes) attrs[a.name] = a.value;
            const out = { tag: tag, attrs: attrs, styles: {}, children: [] };

            if (RAW.has(tag)) {
                out.raw = tag === 'svg' ? node.innerHTML : node.textContent;
                if (tag !== 'svg') return out;
            }

            const cs = getComputedStyle(node);
            for (const p of opts.props) {
                try {
                    const v = cs.getPropertyValue(p);
                    if (v) out.styles[p] = v;
                } catch (e) {}
            }
            if (tag === 'img') {
                out.natural = { width: node.naturalWidth || 0, height: node.naturalHeight || 0 };
            }
            if (tag === 'svg') return out;

            for (const child of node.childNodes) {
                const c = walk(child);
                if (c) out.children.push(c);
            }
            return out;
        } catch (e) {
            return { error: String(e) };
        }
    }
    return walk(root);
}'''

# cssText of same-origin rules matching the node or a descendant. arg = max rules.
MATCHING_RULES = '''(el, maxRules) => {
    const nodes = [el, ...el.querySelectorAll('*')].slice(0, 500);
    const rules = [];
    for (const sheet of document.styleSheets) {
        let list;
        try { list = sheet.cssRules; } catch (e) { continue; }  // cross-origin
        if (!list) continue;
        for (const rule of list) {
            if (rules.length >= maxRules) return rules;
            if (!rule.selectorText) continue;
            try {
                if (nodes.some(n => n.matches(rule.selectorText))) rules.push(rule.cssText);
            } catch (e) {}
        }
    }
    return rules;
}'''

# Containers that may hold repeated children. arg = max containers.
PATTERN_CANDIDATES = '''(maxContainers) => {
    const HINT = /(list|grid|cards?|items|products|gallery|tiles)/i;
    const SAFE = /^[A-Za-z_-][\\w-]*$/;

    function selectorFor(el) {
        if (el.id && SAFE.test(el.id)) return '#' + el.id;
        const tag = el.tagName.toLowerCase();
        const cls = (typeof el.className === 'string')
            ? el.className.split(/\\s+/).filter(c => SAFE.test(c)) : [];
        if (cls.length) return tag + '.' + cls.slice(0, 2).join('.');
        if (tag === 'ul' || tag === 'ol' || tag === 'dl') return tag;
        return null;
    }

    const out = [];
    for (const el of document.querySelectorAll('body *')) {
        if (out.length >= maxContainers) break;
        if (el.children.length < 3) continue;
        const tag = el.tagName.toLowerCase();
        const cls = (typeof el.className === 'string') ? el.className : '';
        const display = getComputedStyle(el).display;
        const isList = tag === 'ul' || tag === 'ol' || tag === 'dl';
        if (!isList && !/grid|flex/.test(display) && !HINT.test(cls)) continue;
        const selector = selectorFor(el);
        if (!selector) continue;

        const children = [...el.children].slice(0, 20).map(c => {
            const r = c.getBoundingClientRect();
            const ctag = c.tagName.toLowerCase();
            return {
                tag: ctag,
                width: r.width,
                height: r.height,
                hasImage: ctag === 'img' || !!c.querySelector('img'),
            };
        });
        out.push({
            selector: selector,
            tag: tag,
            display: display,
            className: cls,
            children: children,
        });
    }
    return out;
}'''

# Ambient styles inherited from <body>.
PAGE_CONTEXT = '''() => {
    const s = getComputedStyle(document.body);
    return {
        'background-color': s.backgroundColor,
        'color': s.color,
        'font-family': s.fontFamily,
    };
}'''
