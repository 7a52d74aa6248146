"""
frbudget_pipeline.pipelines — End-to-end pipeline orchestrators.

    from frbudget_pipeline.pipelines import budget, discovery

    trace  = await discovery.discover_datasets(2025)
    result = await budget.run(2025, out_dir="public/data")
"""
