from .error_handling import show_warning
from .layout_building import add_row_to_layout, get_index_row, get_path_row
