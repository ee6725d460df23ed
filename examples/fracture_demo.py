"""
Example fracturing a concave polygon, then re-fracturing the pieces.
"""

from py_fracture.core import FractureOptions, FracturePipeline, analyze_fracture, validate_fragments
from py_fracture.utils.log import configure_logging


def main():
    configure_logging(level="INFO", fmt="plain")

    # An L-shaped slab, 100 units on a side
    boundary = [(0, 0), (100, 0), (100, 40), (40, 40), (40, 100), (0, 100)]

    options = FractureOptions(
        site_count=16,
        jitter=0.5,
        seed=2024,
        recursion_depth=1,
        recursion_site_count=4,
    )

    pipeline = FracturePipeline()

    print("Fracturing...")
    flat = pipeline.run(boundary, options)
    report = analyze_fracture(flat, boundary)

    print(f"\nSingle pass ({flat.status.value}):")
    print(f"  Sites placed: {flat.stats.placed_sites}/{flat.stats.requested_sites}")
    print(f"  Triangles: {flat.stats.triangles}")
    print(f"  Fragments: {report.fragment_count}")
    print(f"  Area: {report.fragment_area:.3f} of {report.boundary_area:.3f} "
          f"(coverage {report.coverage:.6f})")
    print(f"  Fragment area range: {report.min_fragment_area:.2f} - {report.max_fragment_area:.2f}")
    print(f"  Timings: sites {flat.stats.site_generation_ms:.1f} ms, "
          f"triangulation {flat.stats.triangulation_ms:.1f} ms, "
          f"clipping {flat.stats.clipping_ms:.1f} ms")

    print("\nRe-fracturing each fragment...")
    nested = pipeline.run_recursive(boundary, options)
    nested_report = analyze_fracture(nested, boundary)

    print(f"  Fragments: {nested_report.fragment_count}")
    print(f"  Coverage: {nested_report.coverage:.6f}")

    issues = validate_fragments(nested.fragments)
    if issues:
        print(f"\n{len(issues)} issues found:")
        for issue in issues[:10]:
            print(f"  - {issue}")
    else:
        print("\nAll fragments valid")

    print("\nFirst fragments:")
    for fragment in nested.fragments[:5]:
        centroid = fragment.centroid
        print(f"  site ({fragment.site.x:.2f}, {fragment.site.y:.2f}) depth {fragment.depth}: "
              f"{len(fragment.polygon)} vertices, area {fragment.area:.2f}, "
              f"centroid ({centroid.x:.2f}, {centroid.y:.2f})")


if __name__ == "__main__":
    main()
