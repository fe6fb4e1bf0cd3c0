from __future__ import annotations

from typing import TYPE_CHECKING

import dash_bootstrap_components as dbc
from dash import dcc, html

from dp_browser.ui.helpers import source_options
from dp_browser.ui.ids import IDs

if TYPE_CHECKING:
    from dp_browser.ui.config import AppConfig


def build_navbar(ctx: AppConfig, default_source_id: str) -> dbc.Navbar:
    return dbc.Navbar(
        dbc.Container(
            fluid=True,
            children=[
                html.Div(
                    [
                        html.H2(ctx.global_config.ui_title, className="mb-0"),
                        html.Small("Bind a value from any data source", className="text-muted"),
                    ],
                    className="d-flex flex-column justify-content-center",
                ),
                html.Div(
                    [
                        html.Div("Data source", className="navbar-dataset-title"),
                        dcc.Dropdown(
                            id=IDs.Control.SOURCE_SELECT,
                            options=source_options(ctx.registry.get_source_list()),
                            value=default_source_id,
                            clearable=False,
                            placeholder="Select data source",
                            className="mt-1",
                        ),
                        html.Small(id=IDs.Control.SOURCE_SUMMARY, className="text-muted"),
                    ],
                    className="ms-auto",
                    style={"minWidth": "280px", "maxWidth": "380px", "marginRight": "24px"},
                ),
            ],
        ),
        dark=False,
        className="shadow-sm",
    )


def build_tree_panel(search_debounce_ms: int) -> dbc.Card:
    return dbc.Card(
        dbc.CardBody(
            [
                dcc.Input(
                    id=IDs.Control.SEARCH_INPUT,
                    type="search",
                    placeholder="Search keys and values",
                    # Dash takes the debounce delay in seconds
                    debounce=search_debounce_ms / 1000.0,
                    className="form-control mb-2",
                ),
                html.Div(id=IDs.Control.TREE_LIST, className="dp-tree"),
                html.Div(
                    "No data found",
                    id=IDs.Control.TREE_EMPTY,
                    className="text-muted",
                    style={"display": "none"},
                ),
            ]
        ),
        className="dp-tree-card",
    )


def build_binding_panel() -> dbc.Card:
    return dbc.Card(
        [
            dbc.CardHeader("Bound value"),
            dbc.CardBody(
                [
                    html.Div(id=IDs.Control.BINDING_PATH, className="fw-bold"),
                    html.Pre(id=IDs.Control.BINDING_VALUE, className="dp-binding-value"),
                    dbc.Badge(id=IDs.Control.BINDING_STATUS, className="me-2"),
                    dbc.Button(
                        "Clear binding",
                        id=IDs.Control.CLEAR_BINDING_BTN,
                        size="sm",
                        color="secondary",
                        outline=True,
                    ),
                ]
            ),
        ],
        className="mb-3",
    )


def build_editor_panel() -> dbc.Card:
    return dbc.Card(
        [
            dbc.CardHeader("Edit data"),
            dbc.CardBody(
                [
                    dcc.Textarea(
                        id=IDs.Control.EDITOR_TEXT,
                        style={"width": "100%", "height": "320px", "fontFamily": "monospace"},
                    ),
                    dbc.Button("Save", id=IDs.Control.EDITOR_COMMIT_BTN, color="primary", className="mt-2"),
                    html.Div(id=IDs.Control.EDITOR_STATUS, className="mt-2"),
                    html.Hr(),
                    dcc.Upload(
                        id=IDs.Control.UPLOAD,
                        children=html.Div(["Drop a JSON file or ", html.A("select one")]),
                        accept=".json,application/json",
                        className="dp-upload",
                    ),
                    html.Div(id=IDs.Control.UPLOAD_STATUS, className="mt-2"),
                ]
            ),
        ],
    )


def build_layout(ctx: AppConfig):
    default_source_id = ctx.default_source_id

    return dbc.Container(
        fluid=True,
        children=[
            build_navbar(ctx, default_source_id),

            # App-level stores
            dcc.Store(id=IDs.Store.TREE_STATE, storage_type="session"),
            dcc.Store(id=IDs.Store.BINDING, storage_type="session"),
            dcc.Store(id=IDs.Store.DATA_VERSION, data=0),

            dbc.Row(
                [
                    dbc.Col(build_tree_panel(ctx.global_config.search_debounce_ms), md=6, className="mt-3"),
                    dbc.Col([build_binding_panel(), build_editor_panel()], md=6, className="mt-3"),
                ],
                className="gx-3",
            ),
        ],
    )
