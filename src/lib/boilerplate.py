"""
Boilerplate that forms part of every generated page module

A generated module is HEADER, the page's hoisted <?go:top ?> code,
BODY_BEGIN, the page body indented by BODY_INDENT columns, and BODY_END.
"""

# Name of the function every generated module defines
ENTRY_POINT = "gosp_generate_page"

# Column at which page body statements start
BODY_INDENT = 8

HEADER = '''\
# This file was generated by gosp2py.

import gosp

'''

BODY_BEGIN = '''

def gosp_generate_page(gosp_req, gosp_out, gosp_meta):
    """Write the page to gosp_out and its metadata to gosp_meta."""
    # Provide functions for passing metadata back to the web server.
    def gosp_set_http_status(status):
        gosp.set_http_status(gosp_meta, status)

    def gosp_set_mime_type(mime_type):
        gosp.set_mime_type(gosp_meta, mime_type)

    def gosp_set_header_field(key, value, replace=False):
        gosp.set_header_field(gosp_meta, key, value, replace)

    # Files are opened relative to the page's directory and never outside it.
    def gosp_open(name, mode="r", **kwargs):
        base = gosp_req.base_dir if gosp_req is not None else None
        return gosp.open(name, mode, base=base, **kwargs)

    # Express the page in Python.  On failure report an internal server
    # error.  In every case close the metadata channel.
    try:
        pass
'''

BODY_END = '''\
    except BaseException as gosp_exc:
        gosp.report_failure(gosp_meta, gosp_exc)
    finally:
        gosp_meta.close()
'''
