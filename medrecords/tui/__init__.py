"""Interactive terminal flow: screen model, renderer, navigation graph and engine."""
