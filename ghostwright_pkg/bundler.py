"""
Build configuration for asset bundling.

The production build swaps the stock CSS minimizer for one with an explicit
set of SVG optimization passes, leaving out the passes that break inline SVGs.
"""

import copy
import os
import csscompressor
import rjsmin
from typing import Any, Dict, List, Optional

BUILD_JAVASCRIPT_STAGE = 'build-javascript'
DEVELOP_STAGE = 'develop'

CSS_MINIMIZER = 'CssMinimizerPlugin'
JS_MINIMIZER = 'TerserPlugin'

# Left out: removeUselessDefs, convertStyleToAttrs, inlineStyles, minifyStyles,
# removeStyleElement, removeUselessStrokeAndFill
SVGO_PLUGINS = [
    'cleanupAttrs',
    'cleanupEnableBackground',
    'cleanupIDs',
    'cleanupListOfValues',
    'cleanupNumericValues',
    'collapseGroups',
    'convertColors',
    'convertPathData',
    'convertTransform',
    'mergePaths',
    'moveElemsAttrsToGroup',
    'moveGroupAttrsToElems',
    'prefixIds',
    'removeAttrs',
    'removeComments',
    'removeDesc',
    'removeDimensions',
    'removeDoctype',
    'removeEditorsNSData',
    'removeEmptyAttrs',
    'removeEmptyContainers',
    'removeEmptyText',
    'removeHiddenElems',
    'removeMetadata',
    'removeNonInheritableGroupAttrs',
    'removeOffCanvasPaths',
    'removeRasterImages',
    'removeScriptElement',
    'removeTitle',
    'removeUnknownsAndDefaults',
    'removeUnusedNS',
    'removeXMLProcInst',
    'reusePaths',
    'sortAttrs',
]


def css_minimizer_options() -> Dict[str, Any]:
    return {
        'minimizerOptions': {
            'preset': [
                'default',
                {
                    'svgo': {
                        'full': True,
                        'plugins': list(SVGO_PLUGINS),
                    },
                },
            ],
        },
    }


def minify_css(options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Create a CSS minimizer entry."""
    return {'name': CSS_MINIMIZER, 'options': copy.deepcopy(options or {})}


def minify_js(options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Create a JS minimizer entry."""
    return {'name': JS_MINIMIZER, 'options': copy.deepcopy(options or {})}


def default_build_config(production: bool = True) -> Dict[str, Any]:
    """The build configuration before any stage hook has run."""
    return {
        'mode': 'production' if production else 'development',
        'optimization': {
            'minimize': production,
            'minimizer': [minify_js(), minify_css()],
        },
    }


def find_minimizer(minimizers: List[Dict[str, Any]], name: str) -> Optional[int]:
    """Return the index of the first minimizer entry called ``name``."""
    for index, entry in enumerate(minimizers):
        if entry.get('name') == name:
            return index
    return None


def patch_build_config(config: Dict[str, Any], stage: str) -> Dict[str, Any]:
    """
    Replace the CSS minimizer during the production JS/CSS build.

    Any other stage gets the configuration back untouched. The input is never
    mutated; the production stage works on a copy.
    """
    if stage != BUILD_JAVASCRIPT_STAGE:
        return config

    patched = copy.deepcopy(config)
    minimizers = patched.get('optimization', {}).get('minimizer', [])
    index = find_minimizer(minimizers, CSS_MINIMIZER)
    if index is not None:
        minimizers[index] = minify_css(css_minimizer_options())
    return patched


def _css_compress_kwargs(options):
    return {
        'max_linelen': options.get('maxLineLength', 0),
        'preserve_exclamation_comments': options.get('preserveExclamationComments', True),
    }


def _minify_directory(directory, extension, minifier, logger):
    minified = 0
    if not os.path.exists(directory):
        return minified
    for file in sorted(os.listdir(directory)):
        if not file.endswith(extension) or file.endswith(f'.min{extension}'):
            continue
        path = os.path.join(directory, file)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                source = f.read()
            minified_path = os.path.join(directory, file[:-len(extension)] + f'.min{extension}')
            with open(minified_path, 'w', encoding='utf-8') as f:
                f.write(minifier(source))
            minified += 1
            logger.debug(f"Minified {file}")
        except (IOError, OSError, PermissionError) as e:
            logger.error(f"Failed to minify {file}: {e}")
    return minified


def minify_assets(assets_dir: str, config: Dict[str, Any], logger) -> int:
    """
    Run the configured minimizers over ``assets_dir/css`` and ``assets_dir/js``.

    Returns the number of files written.
    """
    optimization = config.get('optimization', {})
    if not optimization.get('minimize'):
        return 0

    minified = 0
    for entry in optimization.get('minimizer', []):
        options = entry.get('options', {})
        if entry.get('name') == CSS_MINIMIZER:
            kwargs = _css_compress_kwargs(options)
            minified += _minify_directory(
                os.path.join(assets_dir, 'css'), '.css',
                lambda css: csscompressor.compress(css, **kwargs), logger
            )
        elif entry.get('name') == JS_MINIMIZER:
            minified += _minify_directory(
                os.path.join(assets_dir, 'js'), '.js',
                lambda js: rjsmin.jsmin(js, keep_bang_comments=options.get('keepBangComments', False)), logger
            )
        else:
            logger.warning(f"Unknown minimizer '{entry.get('name')}' skipped")
    return minified
